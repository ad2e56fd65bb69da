from barberpos import create_app

app = create_app()

# barberpos live API suite
#
# Drives a running backend over HTTP (pytest + httpx).
#
# Run with: pytest tests/api -m live

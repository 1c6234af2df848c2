"""Run the booking API: ``python -m villapura``."""

from villapura.api.main import run

if __name__ == "__main__":
    run()

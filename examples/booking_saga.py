"""
Saga Pattern (Compensating Transactions)

Demonstrates "backward recovery" with ordinary try/except: when a later
booking fails, the coroutine undoes the earlier ones in reverse order.

A rejection thrown in at a suspension point unwinds through the
coroutine exactly like a synchronous raise, so the compensation logic
is plain Python control flow.

Scenarios:
- destination="Paris"    -> every booking succeeds
- destination="Atlantis" -> car booking fails, hotel and flight are cancelled

## Run with:
```bash
PYTHONPATH=src python examples/booking_saga.py
```
"""

import logging

from pydeferred import async_function, rejected, resolved, run

logger = logging.getLogger("booking_saga")


# =============================================================================
# DOMAIN LOGIC
# =============================================================================


class BookingError(Exception):
    """A booking service refused the request."""


def book_flight(destination):
    logger.info(f"[1] Booking flight to {destination}")
    return resolved(f"FLIGHT-{destination.upper()}")


def book_hotel(destination):
    logger.info(f"[2] Booking hotel in {destination}")
    return resolved(f"HOTEL-{destination.upper()}")


def book_car(destination):
    logger.info(f"[3] Booking car in {destination}")
    if destination == "Atlantis":
        return rejected(BookingError(f"no cars available in {destination}"))
    return resolved(f"CAR-{destination.upper()}")


def cancel(reference):
    logger.info(f"    undo {reference}")
    return resolved(None)


# =============================================================================
# SAGA
# =============================================================================


@async_function
def holiday(destination):
    """Book flight, hotel and car; undo completed bookings on failure."""
    completed = []
    try:
        completed.append((yield book_flight(destination)))
        completed.append((yield book_hotel(destination)))
        completed.append((yield book_car(destination)))
    except BookingError:
        for reference in reversed(completed):
            yield cancel(reference)
        raise
    return completed


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    for destination in ("Paris", "Atlantis"):
        print(f"\n=== {destination} ===")
        try:
            print(f"booked: {run(holiday, destination)}")
        except BookingError as e:
            print(f"saga rolled back: {e}")


if __name__ == "__main__":
    main()

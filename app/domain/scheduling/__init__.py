"""
Scheduling Domain

Availability resolution and booking assignment for detailer appointments.

- calendar.py   - weekly window slot enumeration and time parsing (pure)
- conflicts.py  - half-open overlap detection (pure)
- repository.py - services, weekly windows and bookings in the database
- service.py    - open-slot resolution and detailer assignment
- router.py     - public, customer, detailer and admin endpoints

Double-booking is prevented in two places: the service re-checks current
bookings before inserting, and the bookings table carries an overlap guard
(Postgres exclusion constraint, SQLite triggers) that wins any race between
concurrent requests. A guard rejection surfaces as SlotConflict.
"""

from .router import admin_router, router

__all__ = ["router", "admin_router"]

"""
Schedules Domain

Weekly schedule templates and their expansion into per-doctor slots.

- schemas.py     # Template, assignment and slot schemas
- repository.py  # Template and slot queries
- expander.py    # Template -> 30 minute slots, weekday derivation
- conflicts.py   # Overlap detection against a doctor's existing slots
- service.py     # Template CRUD, assign / unassign
- router.py      # /schedules endpoints
"""

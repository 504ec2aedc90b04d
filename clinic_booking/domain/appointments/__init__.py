"""
Appointments Domain

Booking orchestration on top of the doctor slot state machine.

- slot_state.py    # Slot lookup plus book / release transitions
- schemas.py       # Booking request / response schemas
- repository.py    # Appointment queries
- service.py       # Create / edit / cancel, one transaction each
- availability.py  # Available-slot and single-slot availability queries
- router.py        # /appointments and /doctors/{id}/slots endpoints
"""

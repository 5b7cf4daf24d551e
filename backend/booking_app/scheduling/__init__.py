"""
Scheduling Engine

Core business logic for organizer availability and booking:
- Immutable records: policy, booking, slot (types.py)
- Overlap predicate shared by generator and validator (overlap.py)
- Slot generation over the rolling window (slots.py)
- Single-candidate validation (validator.py)
- Conflict-safe commit path (resolver.py)
"""

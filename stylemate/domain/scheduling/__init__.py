"""
Scheduling Domain

Slot availability and appointment rescheduling.

Server side (Persistence Gateway):
- schemas.py: slot, appointment and reschedule request models
- repository.py: appointment / salon queries
- slot_service.py: available-slot computation and reschedule validation
- router.py: /salons/{id}/available-slots and /customer/appointments endpoints

Client side:
- negotiator.py: reschedule flow state machine (slot fetching with stale-response
  discarding, commit, appointment list invalidation)
- time_utils.py: HH:MM parsing, 12-hour display, selectable-date window
"""

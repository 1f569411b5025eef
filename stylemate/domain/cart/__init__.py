"""
Cart Domain

Server side (Persistence Gateway): schemas.py, repository.py, service.py, router.py
Client side: guest_store.py (device-local guest cart) and engine.py (unified cart,
mode selection, guest-to-account merge, checkout gate). pricing.py derives totals.
"""

"""
Client-side collaborators composed by the customer app: identity session,
Persistence Gateway client, device-local store, query cache and notifications.
"""

from famifirst.routers import admin_recurrence, auth, families, health, invitations

__all__ = [
    "health",
    "auth",
    "families",
    "invitations",
    "admin_recurrence",
]

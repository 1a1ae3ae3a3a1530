from .auth import role_required

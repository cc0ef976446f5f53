# barberbook/deps.py

from barberbook.errors import Forbidden


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise Forbidden("Forbidden")

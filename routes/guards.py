from functools import wraps

from flask import request
from flask_login import current_user

from services.errors import Forbidden, ValidationError


def require_roles(*allowed_roles):
    """Valida o perfil do usuário logado (usar abaixo de @login_required)."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if current_user.role not in allowed_roles:
                raise Forbidden("Sem permissão para acessar esta seção")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    """Corpo JSON da requisição; aceita corpo vazio."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON inválido")
    return data

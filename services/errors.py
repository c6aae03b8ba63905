"""
Erros de domínio dos serviços.

Cada erro carrega o status HTTP e um código estável; o handler registrado em
app.py converte em JSON {"error", "code"}.
"""


class ServiceError(Exception):
    status_code = 400
    code = "error"
    default_message = "Erro ao processar a requisição"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Dados inválidos"


class Unauthorized(ServiceError):
    status_code = 401
    code = "unauthorized"
    default_message = "Não autenticado"


class InvalidCredentials(Unauthorized):
    code = "invalid_credentials"
    default_message = "Credenciais inválidas"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"
    default_message = "Acesso negado"


class QuoteClosed(Forbidden):
    code = "quote_closed"
    default_message = "Cotação fechada"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Não encontrado"


class ShareNotFound(NotFound):
    code = "share_not_found"
    default_message = "Link inválido"


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Registro duplicado"


class ShareExpired(ServiceError):
    status_code = 410
    code = "share_expired"
    default_message = "Link expirado"

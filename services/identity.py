from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from models.user import Role, User
from services.access import ensure_admin, ensure_same_company
from services.errors import Conflict, InvalidCredentials, Unauthorized, ValidationError
from services.persistence import atomic, upsert_insert

_SESSION_SALT = "sm-cotacoes-session"

# Hash usado quando o email não existe, para que o tempo de resposta
# não revele se a conta existe. Um por método de hash.
_DUMMY_HASHES: dict[str, str] = {}


@dataclass(frozen=True)
class SessionClaims:
    id: int
    company_id: int
    role: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "companyId": self.company_id, "role": self.role, "name": self.name}


def _clean_str(v: str | None) -> str:
    # JSON pode trazer número, lista, objeto...
    if v is None:
        return ""
    if not isinstance(v, str):
        raise ValidationError("Valor inválido")
    return v.strip()


def normalize_email(email: str | None) -> str:
    return _clean_str(email).lower()


def hash_password(password: str, method: str) -> str:
    return generate_password_hash(password, method=method)


def validate_password(password: str | None, min_length: int = 6) -> str:
    password = password or ""
    if not isinstance(password, str):
        raise ValidationError("Senha inválida")
    if len(password) < min_length:
        raise ValidationError(f"A senha deve ter pelo menos {min_length} caracteres")
    return password


def _dummy_hash(method: str) -> str:
    if method not in _DUMMY_HASHES:
        _DUMMY_HASHES[method] = generate_password_hash("sm-cotacoes-dummy", method=method)
    return _DUMMY_HASHES[method]


# -------------------------
# Autenticação / sessão
# -------------------------
def authenticate(db: Session, email: str, password: str, method: str = "scrypt") -> User:
    """
    Valida email + senha de um usuário ativo.
    Email desconhecido, senha errada ou usuário inativo -> InvalidCredentials (mesma resposta).
    """
    if not isinstance(email, str) or not isinstance(password, str):
        check_password_hash(_dummy_hash(method), "")
        raise InvalidCredentials()

    user = (
        db.query(User)
        .filter(User.email == normalize_email(email), User.is_active.is_(True))
        .first()
    )
    if not user:
        check_password_hash(_dummy_hash(method), password)
        raise InvalidCredentials()
    if not user.check_password(password):
        raise InvalidCredentials()
    return user


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=_SESSION_SALT)


def issue_session(user: User, secret_key: str) -> str:
    claims = SessionClaims(id=user.id, company_id=user.company_id, role=user.role, name=user.name)
    return _serializer(secret_key).dumps(claims.to_dict())


def verify_session(token: str | None, secret_key: str, max_age: int) -> SessionClaims:
    if not token:
        raise Unauthorized()
    try:
        data = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        raise Unauthorized("Sessão expirada") from None
    except BadSignature:
        raise Unauthorized("Token inválido") from None
    try:
        return SessionClaims(
            id=int(data["id"]),
            company_id=int(data["companyId"]),
            role=str(data["role"]),
            name=str(data["name"]),
        )
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Token inválido") from None


def load_session_user(db: Session, claims: SessionClaims) -> Optional[User]:
    """Usuário atual da sessão; None se foi desativado ou mudou de empresa."""
    user = db.get(User, claims.id)
    if not user or not user.is_active or user.company_id != claims.company_id:
        return None
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str,
                    method: str, min_length: int = 6) -> None:
    if not isinstance(current_password, str) or not user.check_password(current_password):
        raise ValidationError("Senha atual incorreta")
    new_password = validate_password(new_password, min_length)
    with atomic(db):
        user.password_hash = hash_password(new_password, method)


# =========================
# EQUIPE (Admin empresa)
# =========================
def list_users(db: Session, actor) -> list[User]:
    ensure_admin(actor)
    return (
        db.query(User)
        .filter(User.company_id == actor.company_id)
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )


def _get_company_user(db: Session, actor, user_id: int) -> User:
    ensure_admin(actor)
    user = (
        db.query(User)
        .filter(User.id == user_id, User.company_id == actor.company_id)
        .first()
    )
    ensure_same_company(actor, user)
    return user


def create_user(db: Session, actor, *, name: str, email: str, password: str, role: str,
                method: str, min_length: int = 6) -> int:
    ensure_admin(actor)

    name = _clean_str(name)
    email = normalize_email(email)
    role = _clean_str(role).lower() or Role.EMPLOYEE

    if not name or not email:
        raise ValidationError("Nome e email são obrigatórios")
    if role not in Role.ALL:
        raise ValidationError("Perfil inválido")
    password = validate_password(password, min_length)

    now = datetime.utcnow()
    stmt = (
        upsert_insert(db, User)
        .values(
            company_id=actor.company_id,
            name=name,
            email=email,
            password_hash=hash_password(password, method),
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["email"])
        .returning(User.id)
    )
    with atomic(db):
        new_id = db.execute(stmt).scalar()
        if new_id is None:
            raise Conflict("Email já cadastrado")
    return new_id


def update_user(db: Session, actor, user_id: int, *, name: str | None = None,
                email: str | None = None) -> User:
    user = _get_company_user(db, actor, user_id)

    name = _clean_str(name) if name is not None else user.name
    email = normalize_email(email) if email is not None else user.email
    if not name or not email:
        raise ValidationError("Nome e email são obrigatórios")

    taken = (
        db.query(User.id)
        .filter(User.email == email, User.id != user.id)
        .first()
    )
    if taken:
        raise Conflict("Email já cadastrado")

    try:
        with atomic(db):
            user.name = name
            user.email = email
    except IntegrityError:
        raise Conflict("Email já cadastrado") from None
    return user


def toggle_user(db: Session, actor, user_id: int) -> User:
    user = _get_company_user(db, actor, user_id)
    with atomic(db):
        user.is_active = not bool(user.is_active)
    return user


def reset_password(db: Session, actor, user_id: int, password: str, method: str,
                   min_length: int = 6) -> None:
    user = _get_company_user(db, actor, user_id)
    password = validate_password(password, min_length)
    with atomic(db):
        user.password_hash = hash_password(password, method)

from app import create_app
from models import db
from models.company import Company
from models.user import User, Role


DEMO_COMPANY = "Empresa Matriz"

DEMO_USERS = [
    # (nome, email, senha, perfil)
    ("Administrador", "admin@sm.com", "admin123", Role.ADMIN),
    ("João Silva", "joao@sm.com", "123456", Role.EMPLOYEE),
]


def seed_demo(session, method: str) -> bool:
    """
    Cria a empresa demo e seus usuários se ainda não existir nenhuma empresa.
    Retorna True se criou algo.
    """
    if session.query(Company.id).first() is not None:
        return False

    company = Company(name=DEMO_COMPANY)
    session.add(company)
    session.flush()

    for name, email, password, role in DEMO_USERS:
        user = User(company_id=company.id, name=name, email=email, role=role, is_active=True)
        user.set_password(password, method=method)
        session.add(user)

    session.commit()
    return True


def run():
    app = create_app()
    with app.app_context():
        # ✅ Importante:
        # Não usamos db.create_all() porque o schema vem das migrações (Flask-Migrate).
        # Rode antes: flask --app app:create_app db upgrade
        created = seed_demo(db.session, app.config["PASSWORD_HASH_METHOD"])

        if not created:
            print("Já existe empresa cadastrada; nada a fazer.")
            return

        print("✅ Seed pronto.")
        for name, email, password, role in DEMO_USERS:
            print(f"Login ({role}): {email} / {password}")


if __name__ == "__main__":
    run()

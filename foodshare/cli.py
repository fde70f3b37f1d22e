"""
Database and account management commands
"""
from flask import current_app
from foodshare.extensions import db
from foodshare.models import Role, RoleEnum

ROLE_DESCRIPTIONS = {
    RoleEnum.DONOR.value: 'Lists surplus food',
    RoleEnum.RECEIVER.value: 'NGO or volunteer who accepts donations',
    RoleEnum.ADMIN.value: 'Administrator',
}


def init_db_command():
    """Initialize the database: create tables on an empty database, otherwise run migrations."""
    from flask_migrate import upgrade, stamp
    from sqlalchemy import inspect

    inspector = inspect(db.engine)
    existing_tables = inspector.get_table_names()

    if not existing_tables:
        print("Database is empty. Creating all tables...")
        db.create_all()
        created_tables = inspect(db.engine).get_table_names()
        if not created_tables:
            raise RuntimeError("No tables created")
        print(f"✓ Verified {len(created_tables)} tables exist")
        # Mark the schema as current so the next upgrade does not recreate it
        try:
            stamp()
            print("✓ Migrations stamped as current")
        except Exception as e:
            print(f"⚠️  Could not stamp migrations: {e}")
    else:
        print("Database has tables. Running migrations...")
        upgrade()
        print("✓ Migrations applied")

    create_roles_command()


def create_roles_command():
    """Make sure the donor, receiver and admin roles exist."""
    created = 0
    for name in RoleEnum.all():
        if Role.query.filter_by(name=name).first() is None:
            db.session.add(Role(name=name, description=ROLE_DESCRIPTIONS.get(name)))
            created += 1
    db.session.commit()
    print(f"✓ Roles ready ({created} created)")
    return created


def create_admin_user_command(email=None, password=None, name=None):
    """Create or update the admin user. Returns False when no password is available."""
    from foodshare.extensions import user_datastore
    from foodshare.models import User
    from foodshare.services.profiles import upsert_profile

    if not email:
        email = current_app.config.get('ADMIN_USER_EMAIL', 'admin@foodshare.local')

    if not password:
        password = current_app.config.get('ADMIN_PASSWORD')
        if not password:
            if current_app.config.get('ENV') == 'development':
                password = 'admin123'
                print("⚠️  Using default password 'admin123' (development only)")
            else:
                print("❌ ERROR: ADMIN_PASSWORD not configured and no password provided.")
                print("   Set ADMIN_PASSWORD environment variable or use --password option.")
                return False

    create_roles_command()
    admin_role = user_datastore.find_role(RoleEnum.ADMIN.value)

    admin_user = User.query.filter_by(email=email).first()
    if admin_user:
        print(f"User with email '{email}' already exists. Ensuring admin role...")
        if not admin_user.has_role(admin_role):
            user_datastore.add_role_to_user(admin_user, admin_role)
        admin_user.active = True
    else:
        from flask_security.utils import hash_password
        admin_user = user_datastore.create_user(
            email=email,
            password=hash_password(password),
            active=True,
            roles=[admin_role]
        )
        print(f"✓ Admin user created: {email}")
    db.session.commit()

    upsert_profile(admin_user, name=name or 'Admin')
    current_app.logger.info(f'Admin user ready: {email}')
    return True

"""
Create the tables (if missing), the first administrator and the default categories.

Run:  python create_admin_user.py <username> <password> [name]
"""
import sys

from hourbook.application.categories import SeedDefaultCategoriesUseCase
from hourbook.auth import LOCAL_LOGIN_METHOD, hash_password, get_user_by_username
from hourbook.infrastructure.db.models import User
from hourbook.infrastructure.db.session import get_session_factory, init_db

if len(sys.argv) < 3:
    print(__doc__)
    sys.exit(1)

username, password = sys.argv[1], sys.argv[2]
name = sys.argv[3] if len(sys.argv) > 3 else username

init_db()
db = get_session_factory()()

existing = get_user_by_username(db, username)
if existing:
    print(f"User already exists: {username} (ID: {existing.id})")
else:
    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name,
        login_method=LOCAL_LOGIN_METHOD,
        role="admin",
    )
    db.add(user)
    db.commit()
    print(f"Created admin user: {username} (ID: {user.id})")

created = SeedDefaultCategoriesUseCase(db).execute()
print(f"Default categories created: {created}")

db.close()

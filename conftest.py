"""
Shared pytest fixtures: a testing app on in-memory SQLite
"""
import pytest

from app import create_app
from models import db, Member
from store import SQLAlchemyStore

PASSWORD = 'secret123'


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def store(app):
    """Store bound to an app context kept open for the whole test"""
    with app.app_context():
        yield SQLAlchemyStore()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed(app):
    """Run a function inside its own app context and return its result (use ids, not ORM objects)"""
    def run(fn):
        with app.app_context():
            return fn(SQLAlchemyStore())
    return run


def add_member(store, name, role='member', fee_status='normal', monthly_fee=None,
               active=True, email=None):
    member = Member(name=name, email=email or f'{name.lower().replace(" ", ".")}@example.com',
                    role=role, fee_status=fee_status, monthly_fee=monthly_fee, active=active)
    member.set_password(PASSWORD)
    db.session.add(member)
    db.session.commit()
    return member


def login(client, email, password=PASSWORD):
    return client.post('/auth/login', json={'email': email, 'password': password})

import pytest
from unittest.mock import patch
from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from base import Base
from errors import register_error_handlers
from routes.cart import cart_bp
from routes.orders import orders_bp
from routes.products import products_bp
import schema

@pytest.fixture
def engine():
    """In-memory SQLite DB for fast testing."""
    _engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(_engine)
    yield _engine
    Base.metadata.drop_all(_engine)

@pytest.fixture
def db_session(engine):
    """Provides a database session bound to the test engine."""
    TestSession = sessionmaker(bind=engine, autoflush=False)
    s = TestSession()
    try:
        yield s
    finally:
        s.close()

@pytest.fixture
def app(engine):
    """Provides a pre-configured Flask app with all blueprints and a patched db."""
    TestSession = sessionmaker(bind=engine, autoflush=False)

    def mock_get_db():
        s = TestSession()
        try:
            yield s
        finally:
            s.close()

    flask_app = Flask(__name__)
    register_error_handlers(flask_app)
    flask_app.register_blueprint(cart_bp, url_prefix="/api")
    flask_app.register_blueprint(orders_bp, url_prefix="/api")
    flask_app.register_blueprint(products_bp, url_prefix="/api")
    flask_app.config["TESTING"] = True

    with patch("routes.auth.get_db", mock_get_db):
        yield flask_app

@pytest.fixture
def client(app):
    """Provides a Flask test client."""
    return app.test_client()

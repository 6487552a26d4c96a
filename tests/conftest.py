import pytest
from datetime import datetime, timezone
import uuid

from stockledger import create_app
from stockledger import database
from stockledger.database import get_session
from stockledger.models import (
    Team, AppUser, TeamMember, Category, Product, PurchaseLot, InventoryBatch
)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application instance for testing."""
    db_path = tmp_path_factory.mktemp('db') / 'stockledger.db'
    app = create_app(
        'config.TestConfig',
        config_overrides={'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}'},
    )
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    with app.app_context():
        database.drop_all()
        database.create_all()
        session = get_session()
        yield session
        session.rollback()
        session.remove()


@pytest.fixture(scope='function')
def team1(session):
    """Create first test team."""
    suffix = str(uuid.uuid4())[:8]
    team = Team(name=f'Test Team 1 {suffix}', active=True)
    session.add(team)
    session.commit()
    return team


@pytest.fixture(scope='function')
def team2(session):
    """Create second test team for isolation tests."""
    suffix = str(uuid.uuid4())[:8]
    team = Team(name=f'Test Team 2 {suffix}', active=True)
    session.add(team)
    session.commit()
    return team


def _make_member(session, team, role='OWNER'):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(email=f'user-{suffix}@test.com', full_name=f'User {suffix}', active=True)
    session.add(user)
    session.flush()

    # Associate user with team
    session.add(TeamMember(user_id=user.id, team_id=team.id, role=role, active=True))
    session.commit()
    return user


@pytest.fixture(scope='function')
def user1(session, team1):
    """Create test user for team1."""
    return _make_member(session, team1)


@pytest.fixture(scope='function')
def user2(session, team2):
    """Create test user for team2."""
    return _make_member(session, team2)


@pytest.fixture(scope='function')
def product_team1(session, team1):
    """Create test product for team1."""
    category = Category(team_id=team1.id, name='Drinks')
    session.add(category)
    session.flush()

    product = Product(
        team_id=team1.id,
        name='Cola 330ml',
        category_id=category.id,
        sku='COLA-330',
        unit_size='330ml',
        pack_size=24,
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product_team2(session, team2):
    """Create test product for team2."""
    product = Product(team_id=team2.id, name='Water 500ml', sku='WATER-500')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def make_batch(session):
    """Factory for committed inventory batches (direct cost basis by default)."""
    def _make_batch(product, quantity_received=24, quantity_remaining=None, total_cost=2400,
                    purchase_quantity=1, units_per_pack=24, lot=None, **kwargs):
        batch = InventoryBatch(
            team_id=product.team_id,
            product_id=product.id,
            acquired_at=kwargs.pop('acquired_at', datetime(2024, 1, 2, tzinfo=timezone.utc)),
            total_cost=total_cost,
            quantity_received=quantity_received,
            quantity_remaining=quantity_received if quantity_remaining is None else quantity_remaining,
            purchase_quantity=purchase_quantity,
            units_per_pack=units_per_pack,
            lot_id=lot.id if lot is not None else None,
            **kwargs
        )
        session.add(batch)
        session.commit()
        return batch
    return _make_batch


@pytest.fixture(scope='function')
def make_lot(session):
    """Factory for committed purchase lots (pooled cost basis)."""
    def _make_lot(team, total_cost, name='Shipment'):
        lot = PurchaseLot(
            team_id=team.id,
            name=name,
            purchase_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            total_cost=total_cost,
        )
        session.add(lot)
        session.commit()
        return lot
    return _make_lot


@pytest.fixture(scope='function')
def authenticated_client(client, user1, team1):
    """Create authenticated client for team1."""
    user_id, team_id = user1.id, team1.id
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
        sess['team_id'] = team_id
    return client

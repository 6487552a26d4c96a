"""Middleware for caller identity and team context."""
from functools import wraps
from flask import session, g
from stockledger.database import get_session
from stockledger.exceptions import NotAuthenticatedError, ForbiddenError
from stockledger.models import AppUser, TeamMember


def load_user_and_team():
    """
    Load current user and team into g (Flask's per-request global).

    The external auth provider signs the user in and stores user_id and
    team_id in the session; here we only verify them. Sets g.user,
    g.user_id, g.team_id and g.member_role when valid.
    """
    g.user = None
    g.user_id = None
    g.team_id = None
    g.member_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    if not db_session:
        return

    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        return

    g.user = user
    g.user_id = user.id

    team_id = session.get('team_id')
    if team_id:
        # Verify user belongs to this team
        membership = db_session.query(TeamMember).filter_by(
            user_id=user.id,
            team_id=team_id,
            active=True
        ).first()

        if membership:
            g.team_id = membership.team_id
            g.member_role = membership.role
        else:
            # User doesn't belong to this team, clear it
            session.pop('team_id', None)


def require_login(f):
    """Decorator: Require a caller identity."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise NotAuthenticatedError()
        return f(*args, **kwargs)
    return decorated_function


def require_team(f):
    """
    Decorator: Require an active team membership.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('team_id') is None:
            raise ForbiddenError('User not assigned to a team')
        return f(*args, **kwargs)
    return decorated_function

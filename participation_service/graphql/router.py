# participation_service/graphql/router.py
from fastapi import Depends
from fastapi.requests import HTTPConnection
from jose import JWTError
from sqlalchemy.orm import Session
from strawberry.fastapi import BaseContext, GraphQLRouter

from participation_service.api.deps import decode_token
from participation_service.db.session import get_db
from participation_service.schemas.token import TokenPayload
from .schema import schema


class CustomContext(BaseContext):
    def __init__(self, db: Session, user: TokenPayload | None = None):
        super().__init__()
        self.db = db
        self.user = user


def get_user_from_headers(authorization: str | None) -> TokenPayload | None:
    """
    Reads the 'Authorization' header passed from the gateway and verifies
    the JWT. Anonymous callers (public RSVP pages) get None.
    """
    if not authorization:
        return None
    try:
        # The gateway passes the token in the format "Bearer <token>"
        token = authorization.split(" ")[1]
        return decode_token(token)
    except (JWTError, ValueError, IndexError):
        return None


# HTTPConnection rather than Request so the same getter serves websocket
# subscriptions.
def get_context(
    connection: HTTPConnection,
    db: Session = Depends(get_db),
) -> CustomContext:
    user = get_user_from_headers(connection.headers.get("Authorization"))
    return CustomContext(db=db, user=user)


graphql_router = GraphQLRouter(
    schema,
    context_getter=get_context,
)

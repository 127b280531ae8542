from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.auth import get_session
from app.core.container import Container

SESSION_COOKIE = "session"


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_db(container: Container = Depends(get_container)):
    db = container.session_factory()
    try:
        yield db
    finally:
        db.close()


def require_auth(
    request: Request,
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
):
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    if get_session(db, session_id, container.clock.now()) is None:
        raise HTTPException(status_code=401, detail="Session expired")

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from channel_order.database import get_db
from channel_order.models.server import Server


def require_server(server_id: int, db: Session = Depends(get_db)) -> Server:
    """Resolve server_id from the path. Raises 404 if the server doesn't exist."""
    server = db.query(Server).filter(Server.id == server_id).first()
    if not server:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Server not found")
    return server

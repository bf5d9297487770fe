from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from channel_order.api.deps import require_server
from channel_order.database import get_db
from channel_order.models.server import Server
from channel_order.schemas.server import ServerCreate, ServerResponse

router = APIRouter(tags=["servers"])


@router.post("/servers", response_model=ServerResponse, status_code=201)
async def create_server(server_in: ServerCreate, db: Session = Depends(get_db)) -> ServerResponse:
    server = Server(name=server_in.name)
    db.add(server)
    db.commit()
    db.refresh(server)
    return ServerResponse.model_validate(server)


@router.get("/servers/{server_id}", response_model=ServerResponse)
async def get_server(server: Server = Depends(require_server)) -> ServerResponse:
    return ServerResponse.model_validate(server)

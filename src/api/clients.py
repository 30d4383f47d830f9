"""Clients API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_deletion_guard
from src.api.works import WorkResponse, to_work_responses
from src.billing import store
from src.billing.deletion import DeletionGuard
from src.models.client import Client
from src.models.work import WorkItem

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientCreateRequest(BaseModel):
    """Payload for creating a client."""

    name: str = Field(min_length=1, max_length=255)
    pan: str | None = Field(default=None, max_length=20)
    aadhaar: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=30)


class ClientUpdateRequest(BaseModel):
    """Payload for updating a client."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    pan: str | None = Field(default=None, max_length=20)
    aadhaar: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, max_length=30)


class ClientResponse(BaseModel):
    """Client response model."""

    id: int
    name: str
    pan: str | None
    aadhaar: str | None
    address: str | None
    phone: str | None
    created_at: datetime
    updated_at: datetime | None


class ClientListResponse(BaseModel):
    """Paginated client list response."""

    items: list[ClientResponse]
    total: int
    limit: int
    offset: int


class ClientDeleteResponse(BaseModel):
    """Result of deleting a client."""

    client_id: int
    works_deleted: int
    payments_deleted: int


def _to_client_response(client: Client) -> ClientResponse:
    """Map SQLAlchemy client model to response model."""
    return ClientResponse(
        id=client.id,
        name=client.name,
        pan=client.pan,
        aadhaar=client.aadhaar,
        address=client.address,
        phone=client.phone,
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


def _clean(value: str | None) -> str | None:
    """Strip optional text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


async def _flush_or_409(db: AsyncSession) -> None:
    """Flush pending changes, reporting a duplicate PAN as a conflict."""
    try:
        await db.flush()
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A client with this PAN already exists",
        ) from exc


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreateRequest,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """Create a new client."""
    pan = _clean(payload.pan)
    client = Client(
        name=payload.name.strip(),
        pan=pan.upper() if pan else None,
        aadhaar=_clean(payload.aadhaar),
        address=_clean(payload.address),
        phone=_clean(payload.phone),
    )
    db.add(client)
    await _flush_or_409(db)
    return _to_client_response(client)


@router.get("", response_model=ClientListResponse)
async def list_clients(
    search: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> ClientListResponse:
    """List clients with optional name/PAN search and pagination."""
    filters = []
    if search:
        search_pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(
                func.lower(Client.name).like(search_pattern),
                func.lower(func.coalesce(Client.pan, "")).like(search_pattern),
            )
        )

    count_stmt = select(func.count(Client.id))
    list_stmt = select(Client).order_by(Client.created_at.desc(), Client.id.desc())
    if filters:
        count_stmt = count_stmt.where(*filters)
        list_stmt = list_stmt.where(*filters)

    total_result = await db.execute(count_stmt)
    total = int(total_result.scalar() or 0)

    clients_result = await db.execute(list_stmt.limit(limit).offset(offset))
    clients = clients_result.scalars().all()

    return ClientListResponse(
        items=[_to_client_response(client) for client in clients],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """Get client by ID."""
    client = await store.get_client(db, client_id)
    return _to_client_response(client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    payload: ClientUpdateRequest,
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """Partially update client fields."""
    client = await store.get_client(db, client_id)

    updates = payload.model_dump(exclude_unset=True)
    if updates.get("name") is not None:
        client.name = updates["name"].strip()
    if "pan" in updates:
        pan = _clean(updates["pan"])
        client.pan = pan.upper() if pan else None
    for field_name in ("aadhaar", "address", "phone"):
        if field_name in updates:
            setattr(client, field_name, _clean(updates[field_name]))

    await _flush_or_409(db)
    return _to_client_response(client)


@router.delete("/{client_id}", response_model=ClientDeleteResponse)
async def delete_client(
    client_id: int,
    guard: DeletionGuard = Depends(get_deletion_guard),
) -> ClientDeleteResponse:
    """Delete a client with its works and payments. History is kept."""
    deletion = await guard.delete_client(client_id)
    return ClientDeleteResponse(
        client_id=deletion.client_id,
        works_deleted=deletion.works_deleted,
        payments_deleted=deletion.payments_deleted,
    )


@router.get("/{client_id}/works", response_model=list[WorkResponse])
async def list_client_works(
    client_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[WorkResponse]:
    """List a client's works, newest first, with their balances."""
    await store.get_client(db, client_id)
    result = await db.execute(
        select(WorkItem)
        .where(WorkItem.client_id == client_id)
        .order_by(WorkItem.created_at.desc(), WorkItem.id.desc())
    )
    return await to_work_responses(db, result.scalars().all())

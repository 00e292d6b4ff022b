"""
Transaction endpoints - request, approve, transfer, receive, cancel.
Design: Every move is a POST on the transaction; illegal moves surface as 409 from the exception handler.
"""

from fastapi import APIRouter, status

from lendhub.core.dependencies import CurrentUser, ServicesDep
from lendhub.schemas.transaction import TransactionCreate, TransactionResponse

router = APIRouter()


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(services: ServicesDep, data: TransactionCreate, user: CurrentUser):
    """Ask to borrow an item (409 when it already has the maximum of open requests)."""
    return await services.transactions.create(user, data.item_id)


@router.get("/by-item/{item_id}", response_model=list[TransactionResponse])
async def transactions_by_item(services: ServicesDep, item_id: int, user: CurrentUser):
    return await services.transactions.by_item(item_id)


@router.get("/by-item/{item_id}/open", response_model=list[TransactionResponse])
async def open_transactions_by_item(services: ServicesDep, item_id: int, user: CurrentUser):
    return await services.transactions.by_item(item_id, open_only=True)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(services: ServicesDep, transaction_id: int, user: CurrentUser):
    return await services.transactions.get_by_id(transaction_id)


@router.post("/{transaction_id}/approve", response_model=TransactionResponse)
async def approve(services: ServicesDep, transaction_id: int, user: CurrentUser):
    return await services.transactions.approve(user, transaction_id)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel(services: ServicesDep, transaction_id: int, user: CurrentUser):
    return await services.transactions.cancel(user, transaction_id)


@router.post("/{transaction_id}/transfer", response_model=TransactionResponse)
async def transfer(services: ServicesDep, transaction_id: int, user: CurrentUser):
    return await services.transactions.transfer(user, transaction_id)


@router.post("/{transaction_id}/receive", response_model=TransactionResponse)
async def receive(services: ServicesDep, transaction_id: int, user: CurrentUser):
    """Requestor confirms receipt; the item moves to them."""
    return await services.transactions.receive(user, transaction_id)

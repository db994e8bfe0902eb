# autoshop/routers/cart.py

import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status

from autoshop.dependencies import get_store
from autoshop.schemas.cart import CartEntry, CartEntryCreate, CartResponse
from autoshop.storage.base import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/cart", response_model=CartResponse)
def get_cart(user_id: int, store: Storage = Depends(get_store)):
    """Получение содержимого корзины пользователя."""
    return CartResponse(items=store.list_cart_entries(user_id))


@router.post("/cart/items", response_model=CartEntry)
def add_cart_item(item_data: CartEntryCreate, store: Storage = Depends(get_store)):
    """Добавление товара в корзину. Повторное добавление увеличивает количество."""
    return store.upsert_cart_entry(item_data)


@router.delete("/cart/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(item_id: int, store: Storage = Depends(get_store)):
    if not store.remove_cart_entry(item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# autoshop/crud/cart.py
from sqlalchemy.orm import Session
from autoshop.models.cart import CartItem

def get_cart_items(db: Session, user_id: int):
    """Получает все товары в корзине пользователя."""
    return db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id).all()

def add_or_merge_cart_item(
    db: Session,
    user_id: int,
    product_id: int,
    quantity: int,
    source: str = "manual",
    recommendation_id: int | None = None,
) -> CartItem:
    """
    Добавляет товар в корзину. Если товар уже есть - увеличивает количество,
    а не создает вторую строку.
    """
    item = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()

    if item:
        item.quantity += quantity
        # Ссылку на рекомендацию не затираем, только заполняем если ее не было
        if recommendation_id is not None and item.recommendation_id is None:
            item.recommendation_id = recommendation_id
    else:
        item = CartItem(
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            source=source,
            recommendation_id=recommendation_id,
        )
        db.add(item)
    db.commit()
    db.refresh(item)
    return item

def remove_cart_item(db: Session, item_id: int) -> bool:
    item = db.get(CartItem, item_id)
    if item:
        db.delete(item)
        db.commit()
        return True
    return False

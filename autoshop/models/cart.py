# autoshop/models/cart.py
from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.schema import UniqueConstraint

from autoshop.db.session import Base


class CartItem(Base):
    __tablename__ = "cart_items"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    source = Column(String, nullable=False, default="manual", server_default="manual")

    # Обратная ссылка только для поиска, без внешнего ключа:
    # удаление рекомендации не должно трогать корзину
    recommendation_id = Column(Integer, nullable=True, index=True)

    # Один товар - одна строка в корзине пользователя, повторное добавление увеличивает количество
    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', name='_user_product_uc'),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

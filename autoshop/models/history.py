# autoshop/models/history.py
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.schema import UniqueConstraint
from sqlalchemy.sql import func

from autoshop.db.session import Base


class PurchaseRecord(Base):
    __tablename__ = "purchase_history"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    category_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SearchRecord(Base):
    __tablename__ = "search_history"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    query = Column(String, nullable=False)
    # Категория, в которую пользователь перешел из результатов поиска
    clicked_category_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CategoryPreference(Base):
    __tablename__ = "category_preferences"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    category_id = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint('user_id', 'category_id', name='_user_category_uc'),)

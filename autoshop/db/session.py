# autoshop/db/session.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from autoshop.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite по умолчанию запрещает использовать соединение из другого потока
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Создает таблицы всех моделей (для разработки и тестов)."""
    # Импортируем модели, чтобы они зарегистрировались в Base.metadata
    from autoshop.models import automation, cart, coins, history, recommendation  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

from app.models.base import Base
from app.models.pending_code import PendingCode  # noqa: F401
from app.db.session import engine

Base.metadata.create_all(bind=engine)
print("Tables created.")

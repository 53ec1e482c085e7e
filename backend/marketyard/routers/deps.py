from fastapi import Depends
from sqlalchemy.orm import Session

from marketyard.database import get_db
from marketyard.services.storage import EntityStore


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    """Dependency for an entity store bound to the request's session."""
    return EntityStore(db)

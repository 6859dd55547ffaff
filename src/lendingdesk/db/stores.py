"""Keyed stores for patrons and media items.

Each call opens its own session and hands back detached objects, so callers
can read and mutate them freely before passing them back to ``update``.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select

from .models import MediaItem, Patron
from .sqlite import Database


class PatronStore:
    """Lookup and update of patron records."""

    def __init__(self, db: Database):
        self.db = db

    def add(self, name: str, email: Optional[str] = None, patron_id: Optional[str] = None) -> Patron:
        """Insert a new active patron."""
        with self.db.get_session() as session:
            patron = Patron(name=name, email=email, active=True, can_borrow=True)
            if patron_id:
                patron.id = patron_id
            session.add(patron)
            session.commit()
            session.refresh(patron)
            session.expunge(patron)
            return patron

    def find_by_id(self, patron_id: Optional[str]) -> Optional[Patron]:
        if not patron_id:
            return None
        with self.db.get_session() as session:
            patron = session.execute(
                select(Patron).where(Patron.id == patron_id)
            ).scalar_one_or_none()
            if patron:
                session.expunge(patron)
            return patron

    def update(self, patron: Patron) -> bool:
        """Persist a patron's mutable fields.

        Returns:
            False if the patron is not stored
        """
        with self.db.get_session() as session:
            stored = session.get(Patron, patron.id)
            if stored is None:
                return False

            stored.name = patron.name
            stored.email = patron.email
            stored.active = patron.active
            stored.can_borrow = patron.can_borrow
            stored.loan_ids = patron.loan_ids
            stored.updated_at = datetime.now(timezone.utc).isoformat()
            session.commit()
            return True

    def list_all(self, active: Optional[bool] = None) -> list[Patron]:
        with self.db.get_session() as session:
            stmt = select(Patron).order_by(Patron.name)
            if active is not None:
                stmt = stmt.where(Patron.active == active)
            patrons = session.execute(stmt).scalars().all()
            for p in patrons:
                session.expunge(p)
            return list(patrons)


class MediaStore:
    """Lookup of media items and their availability."""

    def __init__(self, db: Database):
        self.db = db

    def add(
        self,
        title: str,
        media_type: str,
        loan_period_days: int,
        item_id: Optional[str] = None,
    ) -> MediaItem:
        """Insert a new, available media item."""
        with self.db.get_session() as session:
            item = MediaItem(
                title=title,
                media_type=media_type.strip().upper(),
                available=True,
                loan_period_days=loan_period_days,
            )
            if item_id:
                item.id = item_id
            session.add(item)
            session.commit()
            session.refresh(item)
            session.expunge(item)
            return item

    def find_by_id(self, item_id: Optional[str]) -> Optional[MediaItem]:
        if not item_id:
            return None
        with self.db.get_session() as session:
            item = session.get(MediaItem, item_id)
            if item:
                session.expunge(item)
            return item

    def find_by_id_and_type(self, item_id: Optional[str], media_type: Optional[str]) -> Optional[MediaItem]:
        """Find an item whose media type matches, ignoring case."""
        if not item_id or not media_type:
            return None
        with self.db.get_session() as session:
            stmt = select(MediaItem).where(
                MediaItem.id == item_id,
                func.upper(MediaItem.media_type) == media_type.strip().upper(),
            )
            item = session.execute(stmt).scalar_one_or_none()
            if item:
                session.expunge(item)
            return item

    def set_available(self, item_id: str, available: bool) -> bool:
        with self.db.get_session() as session:
            item = session.get(MediaItem, item_id)
            if item is None:
                return False
            item.available = available
            session.commit()
            return True

    def list_items(
        self,
        media_type: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MediaItem]:
        with self.db.get_session() as session:
            stmt = select(MediaItem).order_by(MediaItem.title)
            if media_type:
                stmt = stmt.where(func.upper(MediaItem.media_type) == media_type.strip().upper())
            if available_only:
                stmt = stmt.where(MediaItem.available.is_(True))
            items = session.execute(stmt).scalars().all()
            for item in items:
                session.expunge(item)
            return list(items)

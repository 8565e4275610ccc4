"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from venue_scheduler.domain.models import (
    BOOKING_TYPE_MEETING,
    MEETING_CANCELLED,
    RESERVATION_ACTIVE,
    RESERVATION_CANCELLED,
    Meeting,
    NotificationEvent,
    Reservation,
    Room,
    UserProfile,
)
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)


class RepositoryError(RuntimeError):
    """Raised when the backing store rejects or fails a statement."""


class SlotUnavailableError(RepositoryError):
    """Raised when a guarded write lost a race: the slot was taken or the reservation cancelled."""


def _to_iso(instant: datetime) -> str:
    return instant.isoformat(timespec="seconds")


def _row_to_room(row: sqlite3.Row) -> Room:
    return Room(
        room_id=int(row["id"]),
        name=str(row["name"]),
        capacity=int(row["capacity"]),
        floor=int(row["floor"]),
        room_type=str(row["room_type"]),
        equipment=tuple(json.loads(row["equipment"] or "[]")),
        is_active=bool(row["is_active"]),
        description=str(row["description"] or ""),
    )


def _row_to_reservation(row: sqlite3.Row) -> Reservation:
    return Reservation(
        reservation_id=int(row["id"]),
        room_id=int(row["room_id"]),
        start_time=datetime.fromisoformat(row["start_time"]),
        end_time=datetime.fromisoformat(row["end_time"]),
        status=str(row["status"]),
        booking_type=str(row["booking_type"]),
        booked_by=row["booked_by"],
        meeting_request_id=(
            int(row["meeting_request_id"]) if row["meeting_request_id"] is not None else None
        ),
        topic=row["private_meeting_topic"],
        room_name=str(row["room_name"] or ""),
        room_type=str(row["room_type"] or ""),
        capacity=int(row["capacity"] or 0),
        floor_level=int(row["floor_level"] or 0),
        equipment=tuple(json.loads(row["equipment"] or "[]")),
    )


def _row_to_meeting(row: sqlite3.Row) -> Meeting:
    return Meeting(
        meeting_id=int(row["id"]),
        requester_id=str(row["requester_id"]),
        recipient_ids=tuple(json.loads(row["recipient_ids"] or "[]")),
        proposed_duration=int(row["proposed_duration"]),
        proposed_topic=str(row["proposed_topic"]),
        status=str(row["status"]),
        venue_booking_id=(
            int(row["venue_booking_id"]) if row["venue_booking_id"] is not None else None
        ),
    )


def _row_to_user(row: sqlite3.Row) -> UserProfile:
    return UserProfile(
        user_id=str(row["id"]),
        full_name=str(row["full_name"]),
        notify_booking_confirmed=bool(row["notify_booking_confirmed"]),
        notify_request_status_update=bool(row["notify_request_status_update"]),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock from the conflict check until commit."""
        try:
            connection = sqlite3.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Store unreachable: {exc}") from exc
        connection.row_factory = sqlite3.Row
        try:
            connection.execute("PRAGMA foreign_keys = ON;")
            connection.execute("BEGIN IMMEDIATE;")
            try:
                yield connection
            except BaseException:
                connection.execute("ROLLBACK;")
                raise
            connection.execute("COMMIT;")
        except SlotUnavailableError:
            raise
        except sqlite3.Error as exc:
            raise RepositoryError(f"Write failed: {exc}") from exc
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS VenueRooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        capacity INTEGER NOT NULL CHECK (capacity > 0),
                        floor INTEGER NOT NULL DEFAULT 1,
                        room_type TEXT NOT NULL CHECK (room_type IN ('small', 'large')),
                        equipment TEXT NOT NULL DEFAULT '[]',
                        description TEXT,
                        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Users (
                        id TEXT PRIMARY KEY,
                        full_name TEXT NOT NULL,
                        notify_booking_confirmed INTEGER NOT NULL DEFAULT 1,
                        notify_request_status_update INTEGER NOT NULL DEFAULT 1
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS MeetingRequests (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        requester_id TEXT NOT NULL,
                        recipient_ids TEXT NOT NULL DEFAULT '[]',
                        proposed_duration INTEGER NOT NULL CHECK (proposed_duration > 0),
                        proposed_topic TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'accepted',
                        venue_booking_id INTEGER
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS VenueBookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id INTEGER NOT NULL,
                        room_name TEXT,
                        room_type TEXT,
                        capacity INTEGER,
                        floor_level INTEGER,
                        equipment TEXT NOT NULL DEFAULT '[]',
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        booked_by TEXT,
                        meeting_request_id INTEGER,
                        booking_type TEXT NOT NULL DEFAULT 'meeting'
                            CHECK (booking_type IN ('meeting', 'private')),
                        private_meeting_topic TEXT,
                        status TEXT NOT NULL DEFAULT 'active'
                            CHECK (status IN ('active', 'cancelled')),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (end_time > start_time),
                        FOREIGN KEY (room_id) REFERENCES VenueRooms(id),
                        FOREIGN KEY (meeting_request_id) REFERENCES MeetingRequests(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Notifications (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        type TEXT NOT NULL,
                        title TEXT NOT NULL,
                        body TEXT NOT NULL,
                        link TEXT,
                        related_entity_id INTEGER,
                        is_read INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_room_status
                    ON VenueBookings(room_id, status, start_time);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_meeting_status
                    ON VenueBookings(meeting_request_id, status);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed a small venue and delegate list only when rooms are empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) AS count FROM VenueRooms;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return

                rooms = [
                    ("Alpine", 10, 1, "large", ["Wifi", "Projector", "Whiteboard"], 1),
                    ("Birch", 4, 1, "small", ["Wifi"], 1),
                    ("Cedar", 6, 2, "small", ["Wifi", "Monitor"], 1),
                    ("Delta Hall", 24, 2, "large", ["Wifi", "Projector", "Coffee"], 1),
                    ("Elm", 2, 3, "small", [], 0),
                ]
                cursor.executemany(
                    """
                    INSERT INTO VenueRooms (name, capacity, floor, room_type, equipment, is_active)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (name, capacity, floor, room_type, json.dumps(equipment), active)
                        for name, capacity, floor, room_type, equipment, active in rooms
                    ],
                )

                users = [
                    ("delegate-ada", "Ada Lovelace"),
                    ("delegate-alan", "Alan Turing"),
                    ("delegate-grace", "Grace Hopper"),
                ]
                cursor.executemany(
                    "INSERT OR IGNORE INTO Users (id, full_name) VALUES (?, ?);",
                    users,
                )
                conn.commit()
            logger.info("Demo seed completed with %s rooms", len(rooms))
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # --- Rooms ---

    def list_rooms(self, active_only: bool = False) -> list[Room]:
        query = "SELECT * FROM VenueRooms"
        if active_only:
            query += " WHERE is_active = 1"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query + " ORDER BY id ASC;")
            return [_row_to_room(row) for row in cursor.fetchall()]

    def get_room(self, room_id: int) -> Optional[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM VenueRooms WHERE id = ?;", (room_id,))
            row = cursor.fetchone()
            return _row_to_room(row) if row is not None else None

    def create_room(
        self,
        *,
        name: str,
        capacity: int,
        floor: int,
        room_type: str,
        equipment: tuple[str, ...] = (),
        is_active: bool = True,
        description: str = "",
    ) -> Room:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO VenueRooms (
                    name, capacity, floor, room_type, equipment, is_active, description
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    name,
                    capacity,
                    floor,
                    room_type,
                    json.dumps(list(equipment)),
                    int(is_active),
                    description,
                ),
            )
            conn.commit()
            room_id = int(cursor.lastrowid)
        return Room(
            room_id=room_id,
            name=name,
            capacity=capacity,
            floor=floor,
            room_type=room_type,
            equipment=tuple(equipment),
            is_active=is_active,
            description=description,
        )

    def update_room(self, room: Room) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE VenueRooms
                SET name = ?, capacity = ?, floor = ?, room_type = ?,
                    equipment = ?, is_active = ?, description = ?
                WHERE id = ?;
                """,
                (
                    room.name,
                    room.capacity,
                    room.floor,
                    room.room_type,
                    json.dumps(list(room.equipment)),
                    int(room.is_active),
                    room.description,
                    room.room_id,
                ),
            )
            conn.commit()

    # --- Reservations ---

    def list_reservations(
        self,
        room_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Reservation]:
        """Return a reservation snapshot filtered by room and/or status."""
        clauses: list[str] = []
        params: list[Any] = []
        if room_id is not None:
            clauses.append("room_id = ?")
            params.append(room_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM VenueBookings {where} ORDER BY start_time ASC, id ASC;",
                tuple(params),
            )
            return [_row_to_reservation(row) for row in cursor.fetchall()]

    def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM VenueBookings WHERE id = ?;", (reservation_id,))
            row = cursor.fetchone()
            return _row_to_reservation(row) if row is not None else None

    def get_active_reservation_for_meeting(self, meeting_id: int) -> Optional[Reservation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM VenueBookings
                WHERE meeting_request_id = ? AND status = 'active'
                ORDER BY id DESC
                LIMIT 1;
                """,
                (meeting_id,),
            )
            row = cursor.fetchone()
            return _row_to_reservation(row) if row is not None else None

    @staticmethod
    def _assert_slot_free(
        conn: sqlite3.Connection,
        room_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_reservation_id: Optional[int],
    ) -> None:
        cursor = conn.execute(
            """
            SELECT id FROM VenueBookings
            WHERE room_id = ?
              AND status = 'active'
              AND id != ?
              AND start_time < ?
              AND ? < end_time
            LIMIT 1;
            """,
            (
                room_id,
                exclude_reservation_id if exclude_reservation_id is not None else -1,
                _to_iso(end_time),
                _to_iso(start_time),
            ),
        )
        row = cursor.fetchone()
        if row is not None:
            raise SlotUnavailableError(
                f"Room {room_id} was just booked by reservation {row['id']}; please retry"
            )

    def create_reservation(
        self,
        *,
        room: Room,
        start_time: datetime,
        end_time: datetime,
        booked_by: Optional[str],
        booking_type: str = BOOKING_TYPE_MEETING,
        meeting_request_id: Optional[int] = None,
        topic: Optional[str] = None,
    ) -> Reservation:
        """Insert an active reservation and, for meetings, link the back-reference atomically."""
        with self._transaction() as conn:
            self._assert_slot_free(conn, room.room_id, start_time, end_time, None)
            cursor = conn.execute(
                """
                INSERT INTO VenueBookings (
                    room_id, room_name, room_type, capacity, floor_level, equipment,
                    start_time, end_time, booked_by, meeting_request_id,
                    booking_type, private_meeting_topic, status
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'active');
                """,
                (
                    room.room_id,
                    room.name,
                    room.room_type,
                    room.capacity,
                    room.floor,
                    json.dumps(list(room.equipment)),
                    _to_iso(start_time),
                    _to_iso(end_time),
                    booked_by,
                    meeting_request_id,
                    booking_type,
                    topic,
                ),
            )
            reservation_id = int(cursor.lastrowid)
            if meeting_request_id is not None:
                conn.execute(
                    "UPDATE MeetingRequests SET venue_booking_id = ? WHERE id = ?;",
                    (reservation_id, meeting_request_id),
                )
        return Reservation(
            reservation_id=reservation_id,
            room_id=room.room_id,
            start_time=start_time,
            end_time=end_time,
            status=RESERVATION_ACTIVE,
            booking_type=booking_type,
            booked_by=booked_by,
            meeting_request_id=meeting_request_id,
            topic=topic,
            room_name=room.name,
            room_type=room.room_type,
            capacity=room.capacity,
            floor_level=room.floor,
            equipment=tuple(room.equipment),
        )

    def update_reservation_slot(
        self,
        *,
        reservation: Reservation,
        room: Room,
        start_time: datetime,
        end_time: datetime,
        booked_by: Optional[str],
    ) -> Reservation:
        """Move an active reservation in place; a cancelled one is never revived."""
        with self._transaction() as conn:
            self._assert_slot_free(
                conn, room.room_id, start_time, end_time, reservation.reservation_id
            )
            cursor = conn.execute(
                """
                UPDATE VenueBookings
                SET room_id = ?, room_name = ?, room_type = ?, capacity = ?,
                    floor_level = ?, equipment = ?, start_time = ?, end_time = ?,
                    booked_by = ?
                WHERE id = ? AND status = 'active';
                """,
                (
                    room.room_id,
                    room.name,
                    room.room_type,
                    room.capacity,
                    room.floor,
                    json.dumps(list(room.equipment)),
                    _to_iso(start_time),
                    _to_iso(end_time),
                    booked_by,
                    reservation.reservation_id,
                ),
            )
            if cursor.rowcount == 0:
                raise SlotUnavailableError(
                    f"Reservation {reservation.reservation_id} is no longer active; please retry"
                )
        updated = self.get_reservation(reservation.reservation_id)
        if updated is None:
            raise RepositoryError(f"Reservation {reservation.reservation_id} vanished during update")
        return updated

    def set_reservation_status(self, reservation_id: int, status: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE VenueBookings SET status = ? WHERE id = ?;",
                (status, reservation_id),
            )

    # --- Meetings ---

    def create_meeting(
        self,
        *,
        requester_id: str,
        recipient_ids: tuple[str, ...],
        proposed_duration: int,
        proposed_topic: str,
        status: str = "accepted",
    ) -> Meeting:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO MeetingRequests (
                    requester_id, recipient_ids, proposed_duration, proposed_topic, status
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    requester_id,
                    json.dumps(list(recipient_ids)),
                    proposed_duration,
                    proposed_topic,
                    status,
                ),
            )
            conn.commit()
            meeting_id = int(cursor.lastrowid)
        return Meeting(
            meeting_id=meeting_id,
            requester_id=requester_id,
            recipient_ids=tuple(recipient_ids),
            proposed_duration=proposed_duration,
            proposed_topic=proposed_topic,
            status=status,
        )

    def get_meeting(self, meeting_id: int) -> Optional[Meeting]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM MeetingRequests WHERE id = ?;", (meeting_id,))
            row = cursor.fetchone()
            return _row_to_meeting(row) if row is not None else None

    def list_meetings(self) -> list[Meeting]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM MeetingRequests ORDER BY id ASC;")
            return [_row_to_meeting(row) for row in cursor.fetchall()]

    def cancel_meeting(self, meeting_id: int, reservation_id: Optional[int]) -> None:
        """Flag the meeting and its reservation cancelled in one transaction."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE MeetingRequests SET status = ? WHERE id = ?;",
                (MEETING_CANCELLED, meeting_id),
            )
            if reservation_id is not None:
                conn.execute(
                    "UPDATE VenueBookings SET status = ? WHERE id = ?;",
                    (RESERVATION_CANCELLED, reservation_id),
                )

    def change_meeting_duration(
        self,
        meeting_id: int,
        proposed_duration: int,
        reservation_id: Optional[int],
    ) -> None:
        """Store the new duration, clear the back-reference and release the old slot."""
        with self._transaction() as conn:
            conn.execute(
                """
                UPDATE MeetingRequests
                SET proposed_duration = ?, venue_booking_id = NULL
                WHERE id = ?;
                """,
                (proposed_duration, meeting_id),
            )
            if reservation_id is not None:
                conn.execute(
                    "UPDATE VenueBookings SET status = ? WHERE id = ?;",
                    (RESERVATION_CANCELLED, reservation_id),
                )

    # --- Users & notifications ---

    def create_user(
        self,
        user_id: str,
        full_name: str,
        notify_booking_confirmed: bool = True,
        notify_request_status_update: bool = True,
    ) -> UserProfile:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Users (
                    id, full_name, notify_booking_confirmed, notify_request_status_update
                )
                VALUES (?, ?, ?, ?);
                """,
                (
                    user_id,
                    full_name,
                    int(notify_booking_confirmed),
                    int(notify_request_status_update),
                ),
            )
            conn.commit()
        return UserProfile(
            user_id=user_id,
            full_name=full_name,
            notify_booking_confirmed=notify_booking_confirmed,
            notify_request_status_update=notify_request_status_update,
        )

    def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        if not user_ids:
            return {}
        placeholders = ",".join("?" for _ in user_ids)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM Users WHERE id IN ({placeholders});",
                tuple(user_ids),
            )
            return {str(row["id"]): _row_to_user(row) for row in cursor.fetchall()}

    def list_users(self) -> list[UserProfile]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Users ORDER BY full_name ASC;")
            return [_row_to_user(row) for row in cursor.fetchall()]

    def create_notification(self, event: NotificationEvent) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Notifications (user_id, type, title, body, link, related_entity_id)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    event.user_id,
                    event.notification_type,
                    event.title,
                    event.body,
                    event.link,
                    event.related_entity_id,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def list_notifications(self, user_id: str) -> list[NotificationEvent]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT user_id, type, title, body, link, related_entity_id
                FROM Notifications
                WHERE user_id = ?
                ORDER BY id ASC;
                """,
                (user_id,),
            )
            return [
                NotificationEvent(
                    user_id=str(row["user_id"]),
                    notification_type=str(row["type"]),
                    title=str(row["title"]),
                    body=str(row["body"]),
                    link=str(row["link"] or ""),
                    related_entity_id=row["related_entity_id"],
                )
                for row in cursor.fetchall()
            ]

    def count_notifications(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Notifications;")
            return int(cursor.fetchone()["count"])

# models.py
import sqlalchemy
from room_booking.database import metadata

#'users' table
users = sqlalchemy.Table(
    "users",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("email", sqlalchemy.String, unique=True, index=True, nullable=False),
    sqlalchemy.Column("name", sqlalchemy.String, nullable=True),
    sqlalchemy.Column("hashed_password", sqlalchemy.String),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
)

#'rooms' table
rooms = sqlalchemy.Table(
    "rooms",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("name", sqlalchemy.String(100), unique=True, nullable=False),
    sqlalchemy.Column("description", sqlalchemy.Text, nullable=True),
    sqlalchemy.Column("capacity", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("location", sqlalchemy.String(200), nullable=True),
    # available | booked | maintenance
    sqlalchemy.Column("status", sqlalchemy.String(20), nullable=False, default="available"),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.Column("updated_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.CheckConstraint("capacity >= 1 AND capacity <= 100", name="ck_rooms_capacity"),
)

facilities = sqlalchemy.Table(
    "facilities",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("name", sqlalchemy.String(50), unique=True, nullable=False),
    sqlalchemy.Column("description", sqlalchemy.String(200), nullable=True),
    sqlalchemy.Column("icon", sqlalchemy.String(50), nullable=True),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
)

room_facilities = sqlalchemy.Table(
    "room_facilities",
    metadata,
    sqlalchemy.Column(
        "room_id", sqlalchemy.Integer,
        sqlalchemy.ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True,
    ),
    sqlalchemy.Column(
        "facility_id", sqlalchemy.Integer,
        sqlalchemy.ForeignKey("facilities.id"), primary_key=True,
    ),
)

bookings = sqlalchemy.Table(
    "bookings",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("room_id", sqlalchemy.Integer, sqlalchemy.ForeignKey("rooms.id"), nullable=False),
    sqlalchemy.Column("user_id", sqlalchemy.Integer, sqlalchemy.ForeignKey("users.id"), nullable=False),
    sqlalchemy.Column("start_time", sqlalchemy.DateTime(timezone=True), nullable=False),
    sqlalchemy.Column("end_time", sqlalchemy.DateTime(timezone=True), nullable=False),
    sqlalchemy.Column("purpose", sqlalchemy.String(200), nullable=False),
    # pending | confirmed | cancelled | completed
    sqlalchemy.Column("status", sqlalchemy.String(20), nullable=False, default="pending"),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.Column("updated_at", sqlalchemy.DateTime(timezone=True)),
    sqlalchemy.CheckConstraint("start_time < end_time", name="ck_bookings_time_order"),
    sqlalchemy.Index("ix_bookings_room_status", "room_id", "status"),
    sqlalchemy.Index("ix_bookings_user_status", "user_id", "status"),
)

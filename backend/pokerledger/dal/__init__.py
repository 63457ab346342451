"""Data Access Layer -- MongoDB repository classes and connection management."""

from pokerledger.dal.database import (
    connect_to_mongo,
    close_mongo_connection,
    ensure_indexes,
    get_database,
)
from pokerledger.dal.notifications_dal import NotificationDAL
from pokerledger.dal.profiles_dal import PlayerProfileDAL
from pokerledger.dal.sessions_dal import SessionDAL

__all__ = [
    # Connection management
    "connect_to_mongo",
    "close_mongo_connection",
    "ensure_indexes",
    "get_database",
    # DAL classes
    "NotificationDAL",
    "PlayerProfileDAL",
    "SessionDAL",
]

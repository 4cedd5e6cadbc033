"""
Database models package
"""
from app.models.database import Base, get_db, init_db
from app.models.role import Role, RoleName, Country
from app.models.user import User, UserStatus
from app.models.device import Device, DeviceStatus, DeviceType
from app.models.device_group import DeviceGroup, DeviceGroupMember
from app.models.chat import Chat, Message, SenderType, File

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "Role",
    "RoleName",
    "Country",
    "User",
    "UserStatus",
    "Device",
    "DeviceStatus",
    "DeviceType",
    "DeviceGroup",
    "DeviceGroupMember",
    "Chat",
    "Message",
    "SenderType",
    "File",
]

"""
Pydantic schemas package
"""
from app.schemas.user import (
    UserBase, UserCreate, ProfileUpdate, UserResponse, UserListResponse,
    LoginRequest, TokenResponse, DetailMessage, EmailRequest, ResetPasswordRequest,
    TokenMessageResponse, ResetTokenStatus, CountryCreate, CountryResponse
)
from app.schemas.device import (
    DeviceBase, DeviceCreate, DeviceUpdate, DeviceResponse, DeviceListResponse
)
from app.schemas.device_group import (
    GroupCreate, GroupUpdate, GroupResponse, CompareRequest
)
from app.schemas.chat import (
    ChatCreate, ChatUpdate, ChatResponse, MessageCreate, MessageUpdate, MessageResponse,
    MessageExchangeResponse, AIQuestionRequest, FileResponse, FileUpdate,
    ReadPdfResponse
)
from app.schemas.report import (
    ReportOptions, DeviceReportRequest, GroupReportRequest, ReportChatInfo, ReportResponse
)

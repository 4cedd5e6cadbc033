"""
Services package
"""
from app.services.ecowitt_service import ecowitt_service, EcowittService, EcowittAPIError, EcowittValidationError
from app.services.device_service import device_service, DeviceService, DeviceConflictError
from app.services.group_service import group_service, GroupService, MissingDevicesError
from app.services.comparison_service import comparison_service, ComparisonService, ComparisonError
from app.services.weather_service import weather_service, WeatherService, WeatherServiceError
from app.services.storage_service import storage_service, StorageService, StorageError, UploadTimeoutError
from app.services.pdf_reader import pdf_reader, PDFReader, PDFReadError
from app.services.ai_service import ai_service, AIService, AIServiceError
from app.services.email_service import email_service, EmailService
from app.services.report_service import report_service, ReportService, ReportError, ReportNotFoundError
from app.services.chat_service import chat_service, ChatService

__all__ = [
    "ecowitt_service",
    "EcowittService",
    "EcowittAPIError",
    "EcowittValidationError",
    "device_service",
    "DeviceService",
    "DeviceConflictError",
    "group_service",
    "GroupService",
    "MissingDevicesError",
    "comparison_service",
    "ComparisonService",
    "ComparisonError",
    "weather_service",
    "WeatherService",
    "WeatherServiceError",
    "storage_service",
    "StorageService",
    "StorageError",
    "UploadTimeoutError",
    "pdf_reader",
    "PDFReader",
    "PDFReadError",
    "ai_service",
    "AIService",
    "AIServiceError",
    "email_service",
    "EmailService",
    "report_service",
    "ReportService",
    "ReportError",
    "ReportNotFoundError",
    "chat_service",
    "ChatService",
]

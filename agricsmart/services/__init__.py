# ==============================================================================
# SERVICES PACKAGE INITIALIZATION
# ==============================================================================

"""
Service Layer
=============

Business logic for every domain:
- UserService: Registration, authentication and accounts
- ProductService / OrderService: Marketplace and stock reservation
- PaymentService: Payment lifecycle and provider webhook
- NotificationService / EmailService: In-app notifications and mail
- OutboxService / OutboxDispatcher: Persisted side-effect delivery
- ChatService: Chats and messages
- EducationService: Courses, progress and certificates
- AdvisoryService: AI agricultural advice
- AdminService: Platform statistics
"""

from agricsmart.services.admin_service import AdminService
from agricsmart.services.advisory_service import AdvisoryService
from agricsmart.services.base_service import BaseService
from agricsmart.services.chat_service import ChatService
from agricsmart.services.education_service import EducationService
from agricsmart.services.email_service import EmailService
from agricsmart.services.notification_service import NotificationService
from agricsmart.services.order_service import OrderService
from agricsmart.services.outbox import OutboxDispatcher, OutboxService
from agricsmart.services.payment_service import PaymentService
from agricsmart.services.product_service import ProductService
from agricsmart.services.user_service import UserService

__all__ = [
    "AdminService",
    "AdvisoryService",
    "BaseService",
    "ChatService",
    "EducationService",
    "EmailService",
    "NotificationService",
    "OrderService",
    "OutboxDispatcher",
    "OutboxService",
    "PaymentService",
    "ProductService",
    "UserService",
]

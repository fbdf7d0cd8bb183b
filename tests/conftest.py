"""
Pytest Configuration and Fixtures
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fop_system.core.config import Settings
from fop_system.core.database import create_tables, get_db
from fop_system.core.events import EventBus
from fop_system.core.exceptions import ExternalDependencyFailure
from fop_system.models.enums import DocumentType, PaymentMethod, PermitType, REQUIRED_DOCUMENTS
from fop_system.models.fee_configuration import FeeConfiguration
from fop_system.schemas.application import ApplicationCreate, FlightDetailsSchema
from fop_system.schemas.operator import OperatorCreate, AircraftCreate
from fop_system.services import (
    ApplicationService, DocumentService, PaymentService, WaiverService, PermitService,
    FeeService, OperatorService
)
from fop_system.services.audit_service import DatabaseAuditSink
from fop_system.services.collaborators import (
    DocumentStorage, PaymentGateway, PaymentIntent, NotificationService
)
from fop_system.services.context import ServiceContext
from fop_system.services.fee_service import DatabaseFeeConfigurationProvider
from fop_system.services.notification_handlers import register_default_handlers


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class InMemoryDocumentStorage(DocumentStorage):
    def __init__(self):
        self.files = {}
        self.fail = False

    def upload(self, filename, content, content_type=None):
        if self.fail:
            raise ExternalDependencyFailure("Storage offline", code="DocumentStorageUnavailable")
        reference = f"mem-{uuid.uuid4().hex}"
        self.files[reference] = content
        return reference

    def download(self, file_reference):
        return self.files[file_reference]


class RecordingPaymentGateway(PaymentGateway):
    def __init__(self):
        self.charges = []
        self.fail = False

    def initiate_charge(self, amount, method, reference):
        if self.fail:
            raise ConnectionError("gateway timeout")
        self.charges.append((amount, method, reference))
        return PaymentIntent(reference=f"PI-{len(self.charges)}")


class RecordingNotificationService(NotificationService):
    def __init__(self):
        self.sent = []
        self.fail = False

    def notify(self, event_type, payload):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((event_type, payload))

    def types(self):
        return [event_type for event_type, _ in self.sent]


# =============================================================================
# DATABASE AND CONTEXT
# =============================================================================

@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        FILE_STORAGE_PATH=str(tmp_path / "documents"),
        MAX_FILE_SIZE_MB=1,
    )


@pytest.fixture
def engine(settings):
    engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotificationService()


@pytest.fixture
def storage():
    return InMemoryDocumentStorage()


@pytest.fixture
def gateway():
    return RecordingPaymentGateway()


@pytest.fixture
def context(settings, session_factory, notifier, storage, gateway):
    context = ServiceContext(
        settings=settings,
        event_bus=EventBus(),
        document_storage=storage,
        payment_gateway=gateway,
        notification_service=notifier,
        fee_provider=DatabaseFeeConfigurationProvider(session_factory, settings),
        audit_sink=DatabaseAuditSink(session_factory),
    )
    register_default_handlers(context.event_bus, notifier)
    return context


@pytest.fixture
def actor_id():
    return uuid.uuid4()


# =============================================================================
# REFERENCE DATA
# =============================================================================

@pytest.fixture
def fee_config(db):
    """All-types configuration: base 500, 5 per seat, 0.01 per kg"""
    config = FeeConfiguration(
        permit_type=None,
        base_fee=Decimal("500.00"),
        per_seat_fee=Decimal("5.00"),
        per_kg_fee=Decimal("0.01"),
        currency="USD",
        effective_from=date(2000, 1, 1),
    )
    db.add(config)
    db.commit()
    return config


@pytest.fixture
def operator(db, context, actor_id):
    return OperatorService(db, context).create_operator(OperatorCreate(
        name="Caribbean Charter Ltd",
        country="Barbados",
        aoc_number="aoc-8P-001",
        aoc_expiry_date=date.today() + timedelta(days=365),
        address={"street": "1 Airport Road", "city": "Bridgetown", "country": "Barbados"},
        contact={"name": "Ops Desk", "email": "Ops@Example.com", "phone": "+1 246 555 0100"},
    ), actor_id)


@pytest.fixture
def aircraft(db, context, operator, actor_id):
    """50 seats, 25,000 kg MTOW: prices at 1000.00 for a one-time permit"""
    return OperatorService(db, context).create_aircraft(AircraftCreate(
        operator_id=operator.id,
        registration_mark="8p-abc",
        manufacturer="ATR",
        model="72-600",
        seat_capacity=50,
        mtow_kg=Decimal("25000"),
    ), actor_id)


# =============================================================================
# SERVICES AND WORKFLOW HELPERS
# =============================================================================

class Workflow:
    """Drives an application through the workflow with the real services"""

    def __init__(self, db, context, operator, aircraft, actor_id):
        self.db = db
        self.context = context
        self.operator = operator
        self.aircraft = aircraft
        self.actor_id = actor_id
        self.applications = ApplicationService(db, context)
        self.documents = DocumentService(db, context)
        self.payments = PaymentService(db, context)
        self.waivers = WaiverService(db, context)
        self.permits = PermitService(db, context)
        self.fees = FeeService(db, context)

    def create(self, permit_type=PermitType.ONE_TIME, start=None, end=None):
        start = start or date.today()
        end = end or start + timedelta(days=30)
        return self.applications.create_application(ApplicationCreate(
            permit_type=permit_type,
            operator_id=self.operator.id,
            aircraft_id=self.aircraft.id,
            flight_details=FlightDetailsSchema(
                purpose="CHARTER", arrival_airport="tbpb", departure_airport="KMIA", passengers=40
            ),
            requested_start_date=start,
            requested_end_date=end,
        ), self.actor_id)

    def upload(self, application, document_type, expiry_date=None):
        return self.documents.upload(
            application.id, document_type, f"{document_type.value.lower()}.pdf", b"%PDF-1.4 test",
            self.actor_id, content_type="application/pdf", expiry_date=expiry_date,
        )

    def upload_required(self, application):
        for document_type in sorted(REQUIRED_DOCUMENTS[application.permit_type], key=lambda t: t.value):
            self.upload(application, document_type)
        return application

    def submitted(self, permit_type=PermitType.ONE_TIME, **kwargs):
        application = self.upload_required(self.create(permit_type, **kwargs))
        return self.applications.submit(application.id, self.actor_id)

    def under_review(self, permit_type=PermitType.ONE_TIME, **kwargs):
        application = self.submitted(permit_type, **kwargs)
        return self.applications.start_review(application.id, self.actor_id)

    def pending_payment(self, permit_type=PermitType.ONE_TIME, method=PaymentMethod.CREDIT_CARD, **kwargs):
        application = self.under_review(permit_type, **kwargs)
        self.applications.request_payment(application.id, method, self.actor_id)
        return application

    def paid(self, permit_type=PermitType.ONE_TIME, **kwargs):
        application = self.pending_payment(permit_type, **kwargs)
        self.payments.handle_callback(application.id, True, transaction_reference="TXN-1")
        return application

    def issued(self, permit_type=PermitType.ONE_TIME, **kwargs):
        application = self.paid(permit_type, **kwargs)
        _, permit = self.applications.approve(application.id, self.actor_id)
        return permit


@pytest.fixture
def workflow(db, context, operator, aircraft, fee_config, actor_id):
    return Workflow(db, context, operator, aircraft, actor_id)


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def client(session_factory, context):
    from fop_system.api.deps import get_context
    from fop_system.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(actor_id):
    return {"X-Actor-Id": str(actor_id)}

"""
Pytest configuration and fixtures for the Saakra Learning API.

The environment is populated before the application is imported so Settings
validates without a real Supabase project. API tests run against an app built
with in-memory repositories and a token verifier that maps fixed tokens to
users of each role.
"""
import os
import pytest
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

# Set testing environment variables before importing
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["AUDIT_LOG_PERSIST"] = "false"
os.environ.pop("REDIS_URL", None)

from config import settings
from main import create_app
from middleware.auth import AuthenticatedUser
from middleware.rate_limiting import MemoryWindowStore
from routers.dependencies import (
    get_assessment_service,
    get_certificate_service,
    get_progress_service,
)
from services.assessment_service import AssessmentService
from services.audit_logger import AuditLogger
from services.certificate_service import CertificateService
from services.progress_service import ProgressService


USERS = {
    "student-token": AuthenticatedUser(id="student-1", role="student", email="student@saakra.test"),
    "other-student-token": AuthenticatedUser(id="student-2", role="student"),
    "trainer-token": AuthenticatedUser(id="trainer-1", role="trainer"),
    "instructor-token": AuthenticatedUser(id="instructor-1", role="instructor"),
    "admin-token": AuthenticatedUser(id="admin-1", role="admin"),
}


def fake_token_verifier(token: str) -> Optional[AuthenticatedUser]:
    return USERS.get(token)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class FakeProgressRepository:
    """In-memory progress table keyed by (user_id, course_id)."""

    def __init__(self):
        self.rows: Dict[tuple, Dict[str, Any]] = {}

    async def upsert_progress(self, row):
        self.rows[(row["user_id"], row["course_id"])] = dict(row)
        return dict(row)

    async def get_user_progress(self, user_id):
        return [row for (owner, _), row in self.rows.items() if owner == user_id]

    async def get_course_progress(self, user_id, course_id):
        return self.rows.get((user_id, course_id))


class FakeAssessmentRepository:
    """In-memory assessments and submissions."""

    def __init__(self):
        self.assessments: Dict[str, Dict[str, Any]] = {}
        self.submissions: List[Dict[str, Any]] = []

    async def create_assessment(self, row):
        stored = {"id": f"assessment-{len(self.assessments) + 1}", **row}
        self.assessments[stored["id"]] = stored
        return stored

    async def get_assessment(self, assessment_id):
        return self.assessments.get(assessment_id)

    async def list_course_assessments(self, course_id):
        return [a for a in self.assessments.values() if a["course_id"] == course_id]

    async def create_submission(self, row):
        stored = {"id": f"submission-{len(self.submissions) + 1}", **row}
        self.submissions.append(stored)
        return stored

    async def list_submissions(self, user_id=None, course_id=None, assessment_id=None):
        return [
            s for s in reversed(self.submissions)
            if (user_id is None or s["user_id"] == user_id)
            and (course_id is None or s["course_id"] == course_id)
            and (assessment_id is None or s["assessment_id"] == assessment_id)
        ]


class FakeCertificateRepository:
    """In-memory certificates, certificate logs, courses and users."""

    def __init__(self):
        self.certificates: Dict[str, Dict[str, Any]] = {}
        self.logs: List[Dict[str, Any]] = []
        self.courses: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}

    async def create_certificate(self, row):
        self.certificates[row["id"]] = dict(row)
        return dict(row)

    async def get_certificate(self, certificate_id):
        return self.certificates.get(certificate_id)

    async def find_certificate(self, user_id, course_id):
        for certificate in self.certificates.values():
            if certificate["user_id"] == user_id and certificate["course_id"] == course_id:
                return certificate
        return None

    async def list_certificates(self, user_id=None, course_id=None):
        return [
            c for c in self.certificates.values()
            if (user_id is None or c["user_id"] == user_id)
            and (course_id is None or c["course_id"] == course_id)
        ]

    async def update_certificate(self, certificate_id, changes):
        self.certificates[certificate_id].update(changes)
        return self.certificates[certificate_id]

    async def add_log(self, row):
        self.logs.append(dict(row))

    async def get_course(self, course_id):
        return self.courses.get(course_id)

    async def get_user(self, user_id):
        return self.users.get(user_id)


class RecordingAuditSink:
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    async def insert(self, row):
        self.rows.append(row)


class FakeRepositories:
    def __init__(self):
        self.progress = FakeProgressRepository()
        self.assessments = FakeAssessmentRepository()
        self.certificates = FakeCertificateRepository()


@pytest.fixture
def repos():
    """Fresh in-memory repositories."""
    return FakeRepositories()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def certificate_service(repos):
    return CertificateService(repos.certificates, repos.progress, repos.assessments, validity_days=365)


@pytest.fixture
def assessment_service(repos):
    return AssessmentService(repos.assessments, default_passing_score=50)


@pytest.fixture
def make_app(repos, audit_sink):
    """Factory building an app wired to the in-memory repositories."""

    def factory(**overrides):
        app_settings = settings.model_copy(update=overrides)
        app = create_app(
            settings=app_settings,
            token_verifier=fake_token_verifier,
            window_store=MemoryWindowStore(),
            audit_logger=AuditLogger(sink=audit_sink),
        )
        app.dependency_overrides[get_progress_service] = lambda: ProgressService(repos.progress)
        app.dependency_overrides[get_assessment_service] = lambda: AssessmentService(
            repos.assessments, default_passing_score=50
        )
        app.dependency_overrides[get_certificate_service] = lambda: CertificateService(
            repos.certificates, repos.progress, repos.assessments, validity_days=365
        )
        return app

    return factory


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    """Test client for FastAPI app with proper setup."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for repository tests."""
    mock_client = MagicMock()

    # Mock table methods
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table

    # Mock query builder methods
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.limit.return_value = mock_table

    # Mock auth methods
    mock_auth = MagicMock()
    mock_client.auth = mock_auth

    return mock_client

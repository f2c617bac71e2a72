import os
import tempfile

# Configure the app for tests before anything reads the environment
os.environ["ENVIRONMENT"] = "test"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="onboardpro-uploads-")
os.environ["DB_CREATE_TABLES"] = "false"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from onboardpro.database import Base, get_db, init_db  # noqa: E402
from onboardpro.models import UserRole  # noqa: E402
from onboardpro.services import user_service  # noqa: E402
from onboardpro.services.email_service import Mailer  # noqa: E402
from onboardpro.services.file_storage import FileStorageService  # noqa: E402
from onboardpro.utils.security import create_token_pair  # noqa: E402

engine = init_db("sqlite://", create_tables=True, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

from main import app  # noqa: E402

PASSWORD = "password123"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory instead of talking to SMTP"""

    def __init__(self):
        super().__init__(host="smtp.test", from_address="noreply@onboardpro.test")
        self.outbox = []

    def deliver(self, message):
        self.outbox.append(message)

    def sent_to(self, email):
        return [message for message in self.outbox if message["To"] == email]


@pytest.fixture(autouse=True)
def reset_state(tmp_path):
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())
    app.state.mailer = RecordingMailer()
    app.state.file_storage = FileStorageService(upload_dir=str(tmp_path / "uploads"))
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer():
    return app.state.mailer


@pytest.fixture
def storage():
    return app.state.file_storage


def auth_header(user):
    return {"Authorization": f"Bearer {create_token_pair(user)['access_token']}"}


@pytest.fixture
def admin_user(db):
    return user_service.create_user(db, "Ada Admin", "admin@example.com", PASSWORD, role=UserRole.ADMIN)


@pytest.fixture
def hr_user(db):
    return user_service.create_user(db, "Harriet HR", "hr@example.com", PASSWORD, role=UserRole.HR)


@pytest.fixture
def employee_user(db):
    return user_service.create_user(db, "Evan Employee", "evan@example.com", PASSWORD, role=UserRole.EMPLOYEE)


@pytest.fixture
def admin_headers(admin_user):
    return auth_header(admin_user)


@pytest.fixture
def hr_headers(hr_user):
    return auth_header(hr_user)


@pytest.fixture
def employee_headers(employee_user):
    return auth_header(employee_user)


@pytest.fixture
def create_template(client, hr_headers):
    """Create a template with ``task_count`` tasks through the API"""

    def _create(name="Engineering Onboarding", task_count=3, **fields):
        payload = {
            "name": name,
            "description": "First week checklist",
            "estimated_completion_days": 7,
            "tasks": [
                {"title": f"Task {index}", "task_type": "read", "order_index": index}
                for index in range(1, task_count + 1)
            ],
            **fields,
        }
        response = client.post("/templates", json=payload, headers=hr_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def assign(client, hr_headers):
    def _assign(employee_id, template_id):
        response = client.post(
            f"/employees/{employee_id}/assign-template",
            json={"templateId": template_id},
            headers=hr_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _assign


def pdf_upload(name="contract.pdf", body=b"%PDF-1.4 onboarding document"):
    return {"file": (name, body, "application/pdf")}


PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde"
    b"\x00\x00\x00\x0cIDATx\x9cc\xf8\xff\xff?\x00\x05\xfe\x02\xfe\xa7\x35\x81\x84"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)

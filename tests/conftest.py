import pytest

from src.services.application_repository import ApplicationRepository, ArchiveRepository
from src.services.application_service import ApplicationService
from src.services.auth_service import AdminAuthorizer

ADMIN_ID = "770344107104010261"
MEMBER_ID = "123123123123123123"


def make_payload(**overrides):
    payload = {
        "username": "Alice",
        "age": 20,
        "steamId": "11111111111111111",
        "cfxAccount": "https://forum.cfx.re/u/alice",
        "experience": "Three years on a serious RP server, mostly as EMS and a mechanic.",
        "character": (
            "Alice Moreau grew up in Paleto Bay, left for the city after her father's garage "
            "closed, and now drives tow trucks while saving up to reopen it."
        ),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def payload_factory():
    return make_payload


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path/'whitelist.db'}"


@pytest.fixture
def repositories(database_url):
    repository = ApplicationRepository(database_url=database_url)
    archive = ArchiveRepository(database_url=database_url)
    repository.create_schema()
    return repository, archive


@pytest.fixture
def application_service(repositories):
    repository, archive = repositories
    return ApplicationService(
        repository=repository,
        archive=archive,
        authorizer=AdminAuthorizer([ADMIN_ID]),
    )


@pytest.fixture
def admin_id():
    return ADMIN_ID


@pytest.fixture
def member_id():
    return MEMBER_ID

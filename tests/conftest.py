from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from lead_importer.orchestrator import ImportOrchestrator
from lead_importer.storage import LeadRepository, UploadStore, User, create_db_engine, create_tables


@pytest.fixture()
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'crm.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def repository(engine) -> LeadRepository:
    return LeadRepository(engine)


@pytest.fixture()
def uploads(tmp_path) -> UploadStore:
    return UploadStore(tmp_path / "uploads")


@pytest.fixture()
def orchestrator(repository, uploads) -> ImportOrchestrator:
    return ImportOrchestrator(repository, uploads)


@pytest.fixture()
def staff_user(engine) -> int:
    with Session(engine) as session:
        user = User(name="Priya Sharma", email="priya@crm.test", role="STAFF")
        session.add(user)
        session.commit()
        return user.id

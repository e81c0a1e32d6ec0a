from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from domain.capital_gains import CapitalGainsEngine
from domain.tax_brackets import RESIDENT_BRACKETS_2024_25
from domain.tax_position import TaxPositionAggregator

engine: Engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def capital_gains_engine() -> CapitalGainsEngine:
    return CapitalGainsEngine()


@pytest.fixture(scope="function")
def aggregator() -> TaxPositionAggregator:
    return TaxPositionAggregator(RESIDENT_BRACKETS_2024_25)

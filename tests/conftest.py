"""
Shared fixtures: a throwaway SQLite database reached through SQLAlchemy,
an engine context and the reception sample design bound to it.
"""
import pytest
from sqlalchemy import create_engine, text

from d1_design import build_sample_design
from d2_query import EngineContext, QueryExecutor

RECEPTION_ROWS = [
    ("R-001", "Acme Ltda", "2024-03-01"),
    ("R-002", "Bravo SA", "2024-03-02"),
    ("R-003", "Costa & Filhos", "2024-03-03"),
]

NUMBER_ROWS = 250


@pytest.fixture
def database_url(tmp_path):
    """SQLite file with MOV_RECEPCAO (3 rows, columns A, B, C) and NUMBERS (250 rows)"""
    url = f"sqlite:///{tmp_path / 'reports.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE MOV_RECEPCAO (A VARCHAR(10), B VARCHAR(60), C VARCHAR(10))"))
        connection.execute(
            text("INSERT INTO MOV_RECEPCAO (A, B, C) VALUES (:a, :b, :c)"),
            [{"a": a, "b": b, "c": c} for a, b, c in RECEPTION_ROWS],
        )
        connection.execute(text("CREATE TABLE NUMBERS (N INTEGER, LABEL VARCHAR(20), AMOUNT REAL)"))
        connection.execute(
            text("INSERT INTO NUMBERS (N, LABEL, AMOUNT) VALUES (:n, :label, :amount)"),
            [{"n": n, "label": f"item {n}", "amount": n * 1.5} for n in range(1, NUMBER_ROWS + 1)],
        )
        connection.execute(text("CREATE TABLE EMPTY_TABLE (X INTEGER, Y VARCHAR(5))"))
    engine.dispose()
    return url


@pytest.fixture
def engine_context():
    context = EngineContext()
    yield context
    context.close()


@pytest.fixture
def executor(engine_context):
    return QueryExecutor(engine_context, timeout_seconds=5.0, fetch_size=7)


@pytest.fixture
def reception_design(database_url):
    """The reception listing sample pointed at the SQLite database"""
    return build_sample_design(
        url=database_url,
        driver="sqlite",
        query_text="SELECT A, B, C FROM MOV_RECEPCAO ORDER BY A",
        row_limit=None,
        column_count=8,
    )

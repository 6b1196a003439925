"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from itertools import count

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from reportflow.core.logging import configure_logging
from reportflow.graphs.models import (
    Condition,
    ConditionGroup,
    EntityConfig,
    ExportConfig,
    Expression,
    FilterConfig,
    Freeze,
    GraphEdge,
    GraphNode,
    JoinPolicy,
    LinkConfig,
    Measure,
    NodeKind,
    Position,
    Relation,
    SheetColumn,
    SheetConfig,
    SheetStyles,
    SortSpec,
    TransformConfig,
)
from reportflow.storage import create_store_engine, init_database

FIXED_NOW = datetime(2025, 10, 12, 9, 30, tzinfo=UTC)
FIXED_NOW_TEXT = "2025-10-12T09:30:00.000Z"


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Restore the default logging configuration after each test."""
    yield
    configure_logging()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Deterministic id source: id0001, id0002, ..."""
    counter = count(1)
    return lambda: f"id{next(counter):04d}"


# =============================================================================
# Graphs
# =============================================================================


@pytest.fixture
def minimal_nodes() -> list[GraphNode]:
    """Smallest useful graph: entity, sheet, export."""
    return [
        GraphNode(
            id="n_entity",
            kind=NodeKind.ENTITY,
            config=EntityConfig(entity="account", attributes=["name", "revenue"]),
            position=Position(50, 50),
        ),
        GraphNode(
            id="n_sheet",
            kind=NodeKind.SHEET,
            config=SheetConfig(name="Accounts", mode="main", columns=[SheetColumn(key="name")]),
            position=Position(350, 50),
        ),
        GraphNode(
            id="n_export",
            kind=NodeKind.EXPORT,
            config=ExportConfig(format="xlsx", layout="singleSheet", file_name="Accounts.xlsx"),
            position=Position(650, 50),
        ),
    ]


@pytest.fixture
def minimal_edges() -> list[GraphEdge]:
    return [GraphEdge("n_entity", "n_sheet"), GraphEdge("n_sheet", "n_export")]


@pytest.fixture
def full_nodes() -> list[GraphNode]:
    """Every compiled kind, every field filled in with a value that survives a round trip."""
    return [
        GraphNode(
            id="n_entity",
            kind=NodeKind.ENTITY,
            config=EntityConfig(
                entity="employee",
                attributes=["employeeid", "fullname", "hiredate"],
                order_by=[SortSpec("fullname", desc=False)],
                timezone="utc",
                row_cap=500,
            ),
            position=Position(50, 50),
        ),
        GraphNode(
            id="n_filter",
            kind=NodeKind.FILTER,
            config=FilterConfig(
                conditions=[
                    Condition("statecode", "eq", 0),
                    Condition("hiredate", "on-or-after", "@HiredAfter"),
                ],
                filter_groups=[
                    ConditionGroup(
                        type="OR",
                        conditions=[
                            Condition("departmentid.name", "eq", "R&D"),
                            Condition("departmentid.name", "eq", "IT"),
                        ],
                    )
                ],
            ),
            position=Position(350, 50),
        ),
        GraphNode(
            id="n_link",
            kind=NodeKind.LINK,
            config=LinkConfig(
                relation=Relation(
                    kind="oneToMany",
                    schema_name="employee_reviews",
                    from_attribute="employeeid",
                    to_attribute="employeeid",
                    target="performancereview",
                ),
                alias="rev",
                join_type="inner",
                child_filters=[
                    ConditionGroup(type="AND", conditions=[Condition("rating", "gt", 2)])
                ],
                child_sort=[SortSpec("period", desc=True)],
                child_top_n=5,
                child_fields=["reviewid", "rating"],
                policy=JoinPolicy(
                    kind="summarize",
                    measures=[
                        Measure(func="count", alias="ReviewCount"),
                        Measure(func="avg", alias="AvgRating", attribute="rating"),
                    ],
                    group_by=["period"],
                ),
            ),
            position=Position(650, 50),
        ),
        GraphNode(
            id="n_transform",
            kind=NodeKind.TRANSFORM,
            config=TransformConfig(expressions=[Expression("YearOfHire", "year(hiredate)")]),
            position=Position(950, 50),
        ),
        GraphNode(
            id="n_sheet",
            kind=NodeKind.SHEET,
            config=SheetConfig(
                name="Employees",
                mode="main",
                columns=[
                    SheetColumn(key="fullname", title="Employee", format="text", width=28, align="left"),
                    SheetColumn(key="AvgRating", title="Avg Rating", format="number", width=12, align="right"),
                ],
                freeze=Freeze(first_row=True, first_columns=1),
                styles=SheetStyles(zebra_rows=True, bold_header=True),
                hyperlinks=True,
            ),
            position=Position(1250, 50),
        ),
        GraphNode(
            id="n_export",
            kind=NodeKind.EXPORT,
            config=ExportConfig(format="csv", layout="singleSheet", file_name="Employees.csv"),
            position=Position(1550, 50),
        ),
    ]


@pytest.fixture
def full_edges() -> list[GraphEdge]:
    return [
        GraphEdge("n_entity", "n_filter"),
        GraphEdge("n_filter", "n_link"),
        GraphEdge("n_link", "n_transform"),
        GraphEdge("n_transform", "n_sheet"),
        GraphEdge("n_sheet", "n_export"),
    ]


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with the schema created.

    Creates a fresh database for each test function.
    """
    test_engine = create_store_engine("sqlite:///:memory:")
    init_database(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    """Session tied to the test's engine."""
    factory = sessionmaker(engine, expire_on_commit=False)
    with factory() as test_session:
        yield test_session

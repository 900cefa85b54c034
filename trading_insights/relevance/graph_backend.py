"""Neo4j-backed relevance backend.

The schema, its join edges and the keyword weights are mirrored into the graph
as ``(:Table)``, ``(:Column)`` and ``(:Keyword)`` nodes. Scoring reads them back
and runs the same rules as the in-memory backend with a relationship pass on
top. Every driver error is re-raised as :class:`GraphBackendError` so the
service facade can fall back.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from neo4j import GraphDatabase, Query, unit_of_work
from neo4j.exceptions import DriverError, Neo4jError

from ..core.config import GraphSettings
from ..core.errors import GraphBackendError, MalformedGraphResponse
from ..core.logger import get_logger, timeit
from ..schema import (
    KEYWORD_TABLE_WEIGHTS,
    TABLE_TAGS,
    TRADING_SCHEMA,
    ColumnMetadata,
    StarSchema,
)
from .backends import RelevanceBackend, relationship_entry
from .context import QueryContext
from .join_path import resolve_join_path
from .models import TableRelevance
from .scoring import GRAPH_KEYWORD_FACTOR, score_table_relevance

LOGGER = get_logger(__name__)

DriverFactory = Callable[..., Any]

CONSTRAINT_STATEMENTS = (
    "CREATE CONSTRAINT table_name IF NOT EXISTS FOR (t:Table) REQUIRE t.name IS UNIQUE",
    "CREATE CONSTRAINT column_full_name IF NOT EXISTS FOR (c:Column) REQUIRE c.fullName IS UNIQUE",
    "CREATE CONSTRAINT keyword_word IF NOT EXISTS FOR (k:Keyword) REQUIRE k.word IS UNIQUE",
)

CLEAR_SCHEMA = "MATCH (n) WHERE n:Table OR n:Column OR n:Keyword DETACH DELETE n"

CREATE_TABLES = """
UNWIND $tables AS table
CREATE (t:Table {name: table.name, type: table.kind, columnCount: size(table.columns),
                 tags: table.tags, queryCount: 0, lastQueried: null})
WITH t, table
UNWIND table.columns AS column
CREATE (c:Column {name: column.name, fullName: table.name + '.' + column.name,
                  dataType: column.data_type, isPrimary: column.is_primary,
                  isForeign: column.is_foreign, position: column.position})
CREATE (t)-[:HAS_COLUMN]->(c)
"""

CREATE_JOINS = """
UNWIND $edges AS edge
MATCH (source:Table {name: edge.source}), (target:Table {name: edge.target})
CREATE (source)-[:JOINS_TO {foreignKey: edge.foreign_key, primaryKey: edge.primary_key,
                            type: edge.cardinality}]->(target)
WITH edge
MATCH (fc:Column {fullName: edge.source + '.' + edge.foreign_key}),
      (tc:Column {fullName: edge.target + '.' + edge.primary_key})
CREATE (fc)-[:REFERENCES]->(tc)
"""

CREATE_KEYWORDS = """
UNWIND $keywords AS entry
MERGE (k:Keyword {word: entry.word})
WITH k, entry
UNWIND entry.tables AS rel
MATCH (t:Table {name: rel.table})
MERGE (k)-[r:RELATES_TO]->(t)
SET r.weight = rel.weight
"""

KEYWORD_WEIGHTS_QUERY = """
MATCH (k:Keyword)-[r:RELATES_TO]->(t:Table)
WHERE k.word IN $keywords
RETURN k.word AS keyword, t.name AS table, r.weight AS weight
ORDER BY r.weight DESC, t.name
"""

NEIGHBOURS_QUERY = """
MATCH (t1:Table)-[j:JOINS_TO]-(t2:Table)
WHERE t1.name IN $tables
RETURN DISTINCT t1.name AS source, t2.name AS table, j.foreignKey AS fk
ORDER BY source, table
"""

COLUMNS_QUERY = """
MATCH (t:Table)-[:HAS_COLUMN]->(c:Column)
RETURN t.name AS table, c.name AS name, c.dataType AS data_type,
       c.isPrimary AS is_primary, c.isForeign AS is_foreign
ORDER BY t.name, c.position
"""

RECORD_USAGE = """
UNWIND $tables AS name
MATCH (t:Table {name: name})
SET t.queryCount = coalesce(t.queryCount, 0) + 1,
    t.lastQueried = datetime()
"""

SHORTEST_PATHS_QUERY = """
MATCH path = allShortestPaths((start:Table)-[:JOINS_TO*]-(end:Table))
WHERE start.name IN $tables AND end.name IN $tables AND start.name < end.name
RETURN [node IN nodes(path) | node.name] AS tables
ORDER BY length(path) DESC
"""

RELATIONSHIPS_QUERY = """
MATCH (t:Table {name: $table})-[r:JOINS_TO]-(related:Table)
RETURN related.name AS related_table, r.foreignKey AS foreign_key,
       r.primaryKey AS primary_key, startNode(r) = t AS outgoing
ORDER BY related_table
"""

GRAPH_NODES_QUERY = """
MATCH (t:Table)
OPTIONAL MATCH (t)-[:HAS_COLUMN]->(c:Column)
WITH t, c ORDER BY c.position
RETURN t.name AS name, t.type AS kind, t.tags AS tags,
       collect({name: c.name, data_type: c.dataType,
                is_primary_key: c.isPrimary, is_foreign_key: c.isForeign}) AS columns
ORDER BY t.name
"""

GRAPH_EDGES_QUERY = """
MATCH (source:Table)-[r:JOINS_TO]->(target:Table)
RETURN source.name AS source, target.name AS target, r.foreignKey AS foreign_key,
       r.primaryKey AS primary_key, r.type AS cardinality
ORDER BY target
"""

_DRIVER_ERRORS = (Neo4jError, DriverError, OSError)


def _run_query(tx, query: str, params: Optional[dict] = None) -> List[Dict[str, Any]]:
    result = tx.run(query, params or {})
    return [record.data() for record in result]


def _require(row: Mapping[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    try:
        value = row[key]
    except (KeyError, TypeError) as exc:
        raise MalformedGraphResponse(f"Graph record missing {key!r}: {row!r}") from exc
    if not isinstance(value, kind):
        raise MalformedGraphResponse(
            f"Graph record field {key!r} has unexpected type {type(value).__name__}"
        )
    return value


class Neo4jBackend(RelevanceBackend):
    """Relevance backend that reads schema metadata from a Neo4j database."""

    name = "neo4j"

    def __init__(
        self,
        driver: Any,
        schema: StarSchema = TRADING_SCHEMA,
        keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
        *,
        query_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(schema, keyword_weights)
        self._driver = driver
        self.query_timeout = query_timeout
        # The server aborts transactions that run past query_timeout.
        self._work = unit_of_work(timeout=query_timeout)(_run_query)

    @classmethod
    def connect(
        cls,
        settings: GraphSettings,
        schema: StarSchema = TRADING_SCHEMA,
        keyword_weights: Mapping[str, Mapping[str, float]] = KEYWORD_TABLE_WEIGHTS,
        *,
        driver_factory: Optional[DriverFactory] = None,
    ) -> "Neo4jBackend":
        """Open a driver, verify connectivity and seed the schema graph."""

        factory = driver_factory or GraphDatabase.driver
        try:
            driver = factory(
                settings.uri,
                auth=(settings.user, settings.password),
                connection_timeout=settings.connection_timeout,
                max_transaction_retry_time=settings.connection_timeout,
                connection_acquisition_timeout=settings.connection_timeout,
            )
        except _DRIVER_ERRORS as exc:
            raise GraphBackendError(f"Could not create Neo4j driver: {exc}") from exc
        except ValueError as exc:
            raise GraphBackendError(f"Invalid Neo4j configuration: {exc}") from exc

        backend = cls(driver, schema, keyword_weights, query_timeout=settings.query_timeout)
        try:
            backend.verify()
            backend.seed()
        except GraphBackendError:
            backend.close()
            raise
        return backend

    # -- driver plumbing -------------------------------------------------

    def _read(self, query: str, **params: Any) -> List[Dict[str, Any]]:
        try:
            with self._driver.session() as session:
                return session.execute_read(self._work, query, params)
        except _DRIVER_ERRORS as exc:
            raise GraphBackendError(f"Neo4j read failed: {exc}") from exc

    def _write(self, query: str, **params: Any) -> None:
        try:
            with self._driver.session() as session:
                session.execute_write(self._work, query, params)
        except _DRIVER_ERRORS as exc:
            raise GraphBackendError(f"Neo4j write failed: {exc}") from exc

    def verify(self) -> None:
        try:
            self._driver.verify_connectivity()
        except _DRIVER_ERRORS as exc:
            raise GraphBackendError(f"Neo4j is unreachable: {exc}") from exc

    def seed(self) -> None:
        """Replace the schema graph with the tables, joins and keyword weights."""

        tables = [
            {
                "name": table.name,
                "kind": table.kind,
                "tags": list(TABLE_TAGS.get(table.name, ())),
                "columns": [
                    {
                        "name": column.name,
                        "data_type": column.data_type,
                        "is_primary": column.is_primary_key,
                        "is_foreign": column.is_foreign_key,
                        "position": position,
                    }
                    for position, column in enumerate(table.columns)
                ],
            }
            for table in self.schema.tables
        ]
        edges = [
            {
                "source": edge.source,
                "target": edge.target,
                "foreign_key": edge.foreign_key,
                "primary_key": edge.primary_key,
                "cardinality": edge.cardinality,
            }
            for edge in self.schema.edges
        ]
        keywords = [
            {
                "word": word,
                "tables": [{"table": table, "weight": weight} for table, weight in weights.items()],
            }
            for word, weights in self.keyword_weights.items()
        ]

        with timeit("Seeding Neo4j schema graph", logger=LOGGER, unit="keywords", total=len(keywords)):
            try:
                with self._driver.session() as session:
                    # Schema statements cannot share a transaction with writes.
                    for statement in CONSTRAINT_STATEMENTS:
                        session.run(Query(statement, timeout=self.query_timeout)).consume()
            except _DRIVER_ERRORS as exc:
                raise GraphBackendError(f"Could not create Neo4j constraints: {exc}") from exc
            self._write(CLEAR_SCHEMA)
            self._write(CREATE_TABLES, tables=tables)
            self._write(CREATE_JOINS, edges=edges)
            self._write(CREATE_KEYWORDS, keywords=keywords)

    def close(self) -> None:
        try:
            self._driver.close()
        except _DRIVER_ERRORS as exc:
            LOGGER.warning("Error while closing Neo4j driver: %s", exc)

    # -- reads -----------------------------------------------------------

    def _keyword_weights(self, keywords: Iterable[str]) -> Dict[str, Dict[str, float]]:
        weights: Dict[str, Dict[str, float]] = defaultdict(dict)
        for row in self._read(KEYWORD_WEIGHTS_QUERY, keywords=list(keywords)):
            keyword = _require(row, "keyword", str)
            table = _require(row, "table", str)
            weight = _require(row, "weight", (int, float))
            if not self.schema.has_table(table):
                raise MalformedGraphResponse(f"Keyword {keyword!r} relates to unknown table {table!r}")
            weights[keyword][table] = float(weight)
        return weights

    def _neighbours(self, tables: List[str]) -> Dict[str, List[tuple[str, str]]]:
        adjacency: Dict[str, List[tuple[str, str]]] = defaultdict(list)
        if not tables:
            return adjacency
        for row in self._read(NEIGHBOURS_QUERY, tables=tables):
            source = _require(row, "source", str)
            other = _require(row, "table", str)
            label = _require(row, "fk", str)
            if not self.schema.has_table(other):
                raise MalformedGraphResponse(f"Join edge to unknown table {other!r}")
            adjacency[source].append((other, label))
        return adjacency

    def _columns(self) -> Dict[str, List[ColumnMetadata]]:
        columns: Dict[str, List[ColumnMetadata]] = defaultdict(list)
        for row in self._read(COLUMNS_QUERY):
            table = _require(row, "table", str)
            columns[table].append(
                ColumnMetadata(
                    name=_require(row, "name", str),
                    data_type=_require(row, "data_type", str),
                    is_primary_key=bool(row.get("is_primary")),
                    is_foreign_key=bool(row.get("is_foreign")),
                )
            )
        return columns

    def _record_usage(self, tables: List[str]) -> None:
        if not tables:
            return
        try:
            self._write(RECORD_USAGE, tables=tables)
        except GraphBackendError as exc:
            LOGGER.warning("Could not record table usage: %s", exc)

    # -- RelevanceBackend --------------------------------------------------

    def score(self, context: QueryContext) -> List[TableRelevance]:
        weights = self._keyword_weights(context.keywords)
        keyword_tables = [
            name
            for name in self.schema.table_names
            if any(weights.get(keyword, {}).get(name, 0) > 0 for keyword in context.keywords)
        ]
        adjacency = self._neighbours(keyword_tables)
        columns = self._columns()

        results = score_table_relevance(
            context,
            schema=self.schema,
            keyword_weights=weights,
            keyword_factor=GRAPH_KEYWORD_FACTOR,
            relationship_boost=True,
            adjacency=adjacency,
            columns=columns,
        )
        self._record_usage([entry.table for entry in results])
        return results

    def join_path(self, tables: Iterable[str]) -> List[str]:
        requested = list(tables)
        distinct = list(dict.fromkeys(requested))
        if len(distinct) < 2:
            return resolve_join_path(requested, fact_table=self.schema.fact_table)

        via_graph: List[str] = []
        for row in self._read(SHORTEST_PATHS_QUERY, tables=distinct):
            names = _require(row, "tables", list)
            for name in names:
                if not isinstance(name, str) or not self.schema.has_table(name):
                    raise MalformedGraphResponse(f"Unexpected node in join path: {name!r}")
                if name not in via_graph:
                    via_graph.append(name)

        extras = [name for name in via_graph if name not in distinct]
        return resolve_join_path(distinct + extras, fact_table=self.schema.fact_table)

    def relationships(self, table: str) -> List[Dict[str, Any]]:
        return [
            relationship_entry(
                table,
                _require(row, "related_table", str),
                _require(row, "foreign_key", str),
                _require(row, "primary_key", str),
                bool(row.get("outgoing")),
            )
            for row in self._read(RELATIONSHIPS_QUERY, table=table)
        ]

    def schema_graph(self) -> Dict[str, List[Dict[str, Any]]]:
        nodes = []
        for row in self._read(GRAPH_NODES_QUERY):
            columns = [
                column for column in _require(row, "columns", list) if column.get("name") is not None
            ]
            nodes.append(
                {
                    "id": _require(row, "name", str),
                    "name": row["name"],
                    "kind": _require(row, "kind", str),
                    "column_count": len(columns),
                    "tags": list(row.get("tags") or []),
                    "columns": columns,
                }
            )
        edges = []
        for index, row in enumerate(self._read(GRAPH_EDGES_QUERY)):
            foreign_key = _require(row, "foreign_key", str)
            edges.append(
                {
                    "id": f"edge-{index}",
                    "source": _require(row, "source", str),
                    "target": _require(row, "target", str),
                    "label": foreign_key,
                    "foreign_key": foreign_key,
                    "primary_key": _require(row, "primary_key", str),
                    "cardinality": row.get("cardinality") or "MANY_TO_ONE",
                }
            )
        return {"nodes": nodes, "edges": edges}

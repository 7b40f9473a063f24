"""
SPARQL source-of-truth client.

The triplestore holds one docker:Container resource per container, harvested
from the Docker event stream. We only ever read from it: a liveness probe, the
desired set of containers to watch, and a per-container group label lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from dockwatch.core.config import SourceConfig

logger = logging.getLogger(__name__)

DOCKER_PREFIX = "PREFIX docker: <https://w3.org/ns/bde/docker#>"

PROBE_QUERY = "SELECT * WHERE { ?s ?p ?o . } LIMIT 1"


class SourceUnavailable(Exception):
    """The triplestore could not be reached or answered nonsense."""


@dataclass(frozen=True)
class DesiredContainer:
    """A container the source-of-truth says should be watched."""

    identity: str
    runtime_id: str
    display_name: str
    group_label: str | None = None


def sparql_string(value: str) -> str:
    """Escape *value* as a SPARQL string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def sparql_uri(value: str) -> str:
    """Escape *value* as a SPARQL IRI reference."""
    for ch in '<>"{}|^`\\ ':
        if ch in value:
            raise ValueError(f"Invalid character {ch!r} in URI: {value!r}")
    return f"<{value}>"


def _value(binding: dict, name: str) -> str | None:
    cell = binding.get(name)
    if not isinstance(cell, dict):
        return None
    return cell.get("value")


class SparqlClient:
    """Read-only client for the container triplestore."""

    def __init__(
        self,
        source: SourceConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = source or SourceConfig()
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            transport=transport,
            headers={"Accept": "application/sparql-results+json"},
        )

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    async def close(self) -> None:
        await self._client.aclose()

    async def _select(self, query: str) -> list[dict]:
        resp = await self._client.post(self.endpoint, data={"query": query})
        resp.raise_for_status()
        bindings = resp.json()["results"]["bindings"]
        if not isinstance(bindings, list):
            raise TypeError(f"Unexpected bindings type: {type(bindings).__name__}")
        for row in bindings:
            if not isinstance(row, dict):
                raise TypeError(f"Unexpected binding row: {row!r}")
        return bindings

    async def probe(self) -> None:
        """Minimal read to check the triplestore is up. Raises SourceUnavailable."""
        try:
            await self._select(PROBE_QUERY)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise SourceUnavailable(f"Probe against {self.endpoint} failed: {e}") from e

    def desired_set_query(self) -> str:
        label = sparql_string(self._config.monitor_label)
        group_key = sparql_string(self._config.group_label)
        return f"""{DOCKER_PREFIX}
SELECT DISTINCT ?uri ?dockerId ?name ?group WHERE {{
  ?uri a docker:Container ;
       docker:id ?dockerId ;
       docker:name ?name ;
       docker:state/docker:status "running" ;
       docker:label/docker:key {label} .
  OPTIONAL {{
    ?uri docker:label ?groupLabel .
    ?groupLabel docker:key {group_key} ;
                docker:value ?group .
  }}
}}"""

    def group_label_query(self, identity: str) -> str:
        key = sparql_string(self._config.group_label)
        return f"""{DOCKER_PREFIX}
SELECT ?group WHERE {{
  {sparql_uri(identity)} docker:label ?label .
  ?label docker:key {key} ;
         docker:value ?group .
}} LIMIT 1"""

    async def query_desired_set(self) -> list[DesiredContainer]:
        """Running containers that opted into monitoring.

        The group label comes along when the store has it; rows without one
        leave it to query_group_label.
        """
        try:
            bindings = await self._select(self.desired_set_query())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise SourceUnavailable(f"Desired-set query failed: {e}") from e

        desired: list[DesiredContainer] = []
        for binding in bindings:
            identity = _value(binding, "uri")
            runtime_id = _value(binding, "dockerId")
            name = _value(binding, "name")
            if not (identity and runtime_id and name is not None):
                logger.warning(f"Skipping incomplete container binding: {binding}")
                continue
            desired.append(
                DesiredContainer(
                    identity=identity,
                    runtime_id=runtime_id,
                    display_name=name,
                    group_label=_value(binding, "group") or None,
                )
            )
        return desired

    async def query_group_label(self, identity: str) -> str | None:
        """Group (compose project) of a container, or None.

        Connection-level failures mean the store is gone again and raise
        SourceUnavailable. Anything else only costs us the label.
        """
        try:
            query = self.group_label_query(identity)
            bindings = await self._select(query)
        except httpx.TransportError as e:
            raise SourceUnavailable(f"Group lookup for {identity} failed: {e}") from e
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Group lookup for {identity} failed: {e}")
            return None

        for binding in bindings:
            group = _value(binding, "group")
            if group:
                return group
        return None

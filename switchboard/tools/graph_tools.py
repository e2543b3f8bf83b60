"""Knowledge-graph lookup tools for people, organizations and projects.

Every tool reads through the ``GraphStore`` and memoizes successful answers
in the ``KeyValueCache``. Cache failures never fail a lookup; query failures
are reported back to the model as ``{"error": ..., "found": false}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ..errors import StoreError
from ..storage.cache import NullCache
from ..storage.protocols import GraphStore, KeyValueCache
from .base import (
    AgentTool,
    ToolOutput,
    json_result,
    object_schema,
    read_number_param,
    read_str_param,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
ORGANIZATION_TTL = 600


def cache_key(prefix: str, *parts: object) -> str:
    """Build a cache key such as ``person_details:jane_doe``."""
    normalized = [str(part).lower().replace(" ", "_") for part in parts]
    return ":".join([prefix, *normalized])


class GraphTool(AgentTool):
    """Base for tools answering from the knowledge graph."""

    source = "graph"

    def __init__(self, store: GraphStore, cache: KeyValueCache | None = None):
        self.store = store
        self.cache = cache or NullCache()

    async def _from_cache(self, key: str) -> Any | None:
        try:
            cached = await self.cache.get(key)
            if cached:
                return json.loads(cached)
        except (StoreError, ValueError) as e:
            logger.debug(f"Cache read skipped for {key}: {e}")
        return None

    async def _to_cache(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        try:
            await self.cache.set(key, json.dumps(value, default=str), ttl)
        except (StoreError, TypeError) as e:
            logger.debug(f"Cache write skipped for {key}: {e}")


# -----------------------------------------------------------------------------
# People and organizations
# -----------------------------------------------------------------------------


class GetPersonDetails(GraphTool):
    name = "get_person_details"
    label = "Get Person Details"
    description = (
        "Look up a person in the entertainment industry knowledge graph. Returns "
        "profile, projects, organization, groups, and contact owner."
    )
    parameters = object_schema(
        {
            "name": {
                "type": "string",
                "description": "Person name to search for in the knowledge graph",
            }
        },
        required=["name"],
    )

    QUERY = """
        MATCH (p:Person)
        WHERE p.name CONTAINS $name OR p.fullName CONTAINS $name
        OPTIONAL MATCH (p)-[r:CONTRIBUTED_TO]->(proj:Project)
        OPTIONAL MATCH (p)-[:WORKS_FOR]->(org:Organization)
        OPTIONAL MATCH (p)-[:BELONGS_TO]->(g:Group)
        OPTIONAL MATCH (internal:Person {isInternal: true})-[:OWNS_CONTACT]->(p)
        RETURN p {
          .name, .fullName, .email, .folkId, .isInternal,
          .bio, .role, .phone, .location, .linkedinUrl, .website, .tags
        } AS person,
        org.name AS organization,
        collect(DISTINCT {
          project: proj.name, role: r.role, startDate: r.startDate, projectId: proj.id
        }) AS projects,
        collect(DISTINCT g.name) AS groups,
        internal.name AS contact_owner
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        name = read_str_param(args, "name", required=True)
        key = cache_key("person_details", name)

        cached = await self._from_cache(key)
        if cached:
            return json_result(cached)

        try:
            records = await self.store.read(self.QUERY, {"name": name})
        except StoreError as e:
            return json_result({"error": f"Query failed: {e}", "query": name, "found": False})

        if not records:
            return json_result({
                "person": None,
                "organization": None,
                "projects": [],
                "groups": [],
                "contact_owner": None,
                "query": name,
                "found": False,
                "error": "Person not found in knowledge graph",
            })

        record = records[0]
        response = {
            "person": record.get("person"),
            "organization": record.get("organization"),
            "projects": [p for p in record.get("projects") or [] if p.get("project")],
            "groups": [g for g in record.get("groups") or [] if g],
            "contact_owner": record.get("contact_owner"),
            "query": name,
            "found": True,
        }
        await self._to_cache(key, response)
        return json_result(response)


class GetOrganizationProfile(GraphTool):
    name = "get_organization_profile"
    label = "Get Organization Profile"
    description = (
        "Get comprehensive organization profile including people, projects, and "
        "deals from the knowledge graph."
    )
    parameters = object_schema(
        {"name": {"type": "string", "description": "Organization name to look up"}},
        required=["name"],
    )

    QUERY = """
        MATCH (o:Organization)
        WHERE o.id CONTAINS $org_name OR o.name CONTAINS $org_name OR
              toLower(o.id) CONTAINS toLower($org_name) OR
              toLower(o.name) CONTAINS toLower($org_name)
        OPTIONAL MATCH (o)<-[:WORKS_FOR]-(p:Person)
        OPTIONAL MATCH (o)<-[:FOR_CLIENT]-(proj:Project)
        OPTIONAL MATCH (o)<-[:FOR_ORGANIZATION]-(d:Deal)
        RETURN o { .id, .name, .type, .description, .folkId } AS organization,
        collect(DISTINCT p.name) AS people,
        collect(DISTINCT proj.name) AS projects,
        collect(DISTINCT d.name) AS deals,
        count(DISTINCT p) AS people_count,
        count(DISTINCT proj) AS project_count
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        org_name = read_str_param(args, "name", required=True)
        key = cache_key("org_profile", org_name)

        cached = await self._from_cache(key)
        if cached:
            return json_result(cached)

        try:
            records = await self.store.read(self.QUERY, {"org_name": org_name})
        except StoreError as e:
            return json_result({"error": f"Query failed: {e}", "query": org_name, "found": False})

        if not records:
            return json_result({
                "organization": None,
                "people": [],
                "projects": [],
                "deals": [],
                "stats": {"people_count": 0, "project_count": 0},
                "query": org_name,
                "found": False,
                "error": "Organization not found",
            })

        record = records[0]
        organization = record.get("organization") or {}
        display_name = (
            organization.get("name") or organization.get("id") or "Unknown Organization"
        )
        response = {
            "organization": {**organization, "display_name": display_name},
            "people": [p for p in record.get("people") or [] if p],
            "projects": [p for p in record.get("projects") or [] if p],
            "deals": [d for d in record.get("deals") or [] if d],
            "stats": {
                "people_count": record.get("people_count", 0),
                "project_count": record.get("project_count", 0),
            },
            "query": org_name,
            "found": True,
        }
        await self._to_cache(key, response, ORGANIZATION_TTL)
        return json_result(response)


class FindCollaborators(GraphTool):
    name = "find_collaborators"
    label = "Find Collaborators"
    description = (
        "Find people who have collaborated with a specific person on projects, "
        "optionally filtered by project type."
    )
    parameters = object_schema(
        {
            "person_name": {
                "type": "string",
                "description": "Person to find collaborators for",
            },
            "project_type": {
                "type": "string",
                "description": "Optional project type filter",
            },
        },
        required=["person_name"],
    )

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        person_name = read_str_param(args, "person_name", required=True)
        project_type = read_str_param(args, "project_type")
        key = cache_key("collaborators", person_name, project_type or "all")

        cached = await self._from_cache(key)
        if cached:
            return json_result(cached)

        query = """
            MATCH (p1:Person)-[:CONTRIBUTED_TO]->(proj:Project)<-[:CONTRIBUTED_TO]-(p2:Person)
            WHERE p1.name CONTAINS $person_name AND p1 <> p2
        """
        params: dict[str, Any] = {"person_name": person_name}
        if project_type:
            query += " AND proj.type CONTAINS $project_type"
            params["project_type"] = project_type
        query += """
            WITH p2, collect(DISTINCT proj.name) AS shared_projects,
                 count(DISTINCT proj) AS collaboration_count
            ORDER BY collaboration_count DESC
            LIMIT 20
            RETURN p2 { .name, .role, .email, .folkId } AS collaborator,
            shared_projects, collaboration_count
        """

        try:
            records = await self.store.read(query, params)
        except StoreError as e:
            return json_result(
                {"error": f"Query failed: {e}", "person": person_name, "found": False}
            )

        collaborators = [
            {
                "collaborator": record.get("collaborator"),
                "shared_projects": record.get("shared_projects"),
                "collaboration_count": record.get("collaboration_count"),
            }
            for record in records
        ]
        response = {
            "collaborators": collaborators,
            "person": person_name,
            "project_type": project_type,
            "count": len(collaborators),
            "found": bool(collaborators),
        }
        await self._to_cache(key, response)
        return json_result(response)


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------


class GetProjectDetails(GraphTool):
    name = "get_project_details"
    label = "Get Project Details"
    description = (
        "Get comprehensive project information including crew, creative concepts, "
        "client, and department."
    )
    parameters = object_schema(
        {"title": {"type": "string", "description": "Project title to search for"}},
        required=["title"],
    )

    QUERY = """
        MATCH (proj:Project)
        WHERE proj.name CONTAINS $title
        OPTIONAL MATCH (proj)-[:FOR_CLIENT]->(client:Organization)
        OPTIONAL MATCH (proj)-[:FEATURES_CONCEPT]->(c:CreativeConcept)
        OPTIONAL MATCH (p:Person)-[r:CONTRIBUTED_TO]->(proj)
        OPTIONAL MATCH (proj)-[:MANAGED_BY]->(dept:Department)
        RETURN proj { .name, .id, .logline, .status, .year, .description } AS project,
        client.name AS client,
        dept.name AS department,
        collect(DISTINCT c.name) AS concepts,
        collect(DISTINCT { person: p.name, role: r.role, startDate: r.startDate }) AS crew
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        title = read_str_param(args, "title", required=True)
        key = cache_key("project_details", title)

        cached = await self._from_cache(key)
        if cached:
            return json_result(cached)

        try:
            records = await self.store.read(self.QUERY, {"title": title})
        except StoreError as e:
            return json_result(
                {"error": f"Query failed: {e}", "project_title": title, "found": False}
            )

        if not records:
            return json_result({
                "project": None,
                "found": False,
                "error": "Project not found in knowledge graph",
            })

        record = records[0]
        crew = [c for c in record.get("crew") or [] if c.get("person")]
        response = {
            "project": record.get("project"),
            "client": record.get("client"),
            "department": record.get("department"),
            "concepts": [c for c in record.get("concepts") or [] if c],
            "crew": crew,
            "crew_count": len(crew),
            "found": True,
        }
        await self._to_cache(key, response)
        return json_result(response)


class FindSimilarProjects(GraphTool):
    name = "find_similar_projects"
    label = "Find Similar Projects"
    description = (
        "Find projects similar to a given project using vector similarity on "
        "concept embeddings."
    )
    parameters = object_schema(
        {
            "title": {
                "type": "string",
                "description": "Project title to find similar projects for",
            },
            "threshold": {
                "type": "number",
                "description": "Cosine similarity threshold (0-1, default 0.8)",
            },
        },
        required=["title"],
    )

    TARGET_QUERY = """
        MATCH (proj:Project)
        WHERE proj.name CONTAINS $title
        RETURN proj.concept_embedding AS embedding, proj.name AS exact_title
        LIMIT 1
    """

    SIMILAR_QUERY = """
        MATCH (proj:Project)
        WHERE proj.concept_embedding IS NOT NULL AND proj.name <> $exact_title
        WITH proj, gds.similarity.cosine(proj.concept_embedding, $target_embedding) AS similarity
        WHERE similarity >= $threshold
        OPTIONAL MATCH (proj)-[:FOR_CLIENT]->(client:Organization)
        RETURN proj { .name, .type, .year, .status } AS project,
        client.name AS client,
        similarity
        ORDER BY similarity DESC
        LIMIT 10
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        title = read_str_param(args, "title", required=True)
        threshold = read_number_param(args, "threshold")
        if threshold is None:
            threshold = 0.8
        key = cache_key("similar_projects", title, threshold)

        cached = await self._from_cache(key)
        if cached:
            return json_result(cached)

        try:
            targets = await self.store.read(self.TARGET_QUERY, {"title": title})
            if not targets:
                return json_result({
                    "similar_projects": [],
                    "target_project": title,
                    "error": "Target project not found or no embedding available",
                    "found": False,
                })

            embedding = targets[0].get("embedding")
            exact_title = targets[0].get("exact_title")
            if not embedding:
                return json_result({
                    "similar_projects": [],
                    "target_project": title,
                    "error": "Target project has no concept embedding",
                    "found": False,
                })

            records = await self.store.read(
                self.SIMILAR_QUERY,
                {
                    "exact_title": exact_title,
                    "target_embedding": embedding,
                    "threshold": threshold,
                },
            )
        except StoreError as e:
            return json_result(
                {"error": f"Query failed: {e}", "target_project": title, "found": False}
            )

        similar = [
            {
                "project": record.get("project"),
                "client": record.get("client"),
                "similarity_score": record.get("similarity"),
            }
            for record in records
        ]
        response = {
            "similar_projects": similar,
            "target_project": exact_title,
            "similarity_threshold": threshold,
            "count": len(similar),
            "found": bool(similar),
        }
        await self._to_cache(key, response)
        return json_result(response)


# -----------------------------------------------------------------------------
# Cross-type search
# -----------------------------------------------------------------------------


SEARCH_QUERIES: dict[str, str] = {
    "persons": """
        MATCH (p:Person)
        WHERE p.name CONTAINS $query OR p.fullName CONTAINS $query OR p.bio CONTAINS $query
        RETURN p { .name, .fullName, .role, .bio } AS result, 'Person' AS type
        LIMIT $limit
    """,
    "projects": """
        MATCH (p:Project)
        WHERE p.name CONTAINS $query OR p.description CONTAINS $query OR p.logline CONTAINS $query
        RETURN p { .name, .type, .year, .status, .description } AS result, 'Project' AS type
        LIMIT $limit
    """,
    "organizations": """
        MATCH (o:Organization)
        WHERE o.name CONTAINS $query OR o.description CONTAINS $query
        RETURN o { .name, .type, .description } AS result, 'Organization' AS type
        LIMIT $limit
    """,
    "documents": """
        MATCH (d:Document)
        WHERE d.title CONTAINS $query OR d.content CONTAINS $query
        RETURN d { .title, .type, .id } AS result, 'Document' AS type
        LIMIT $limit
    """,
}


class BroadVectorSearch(GraphTool):
    name = "broad_vector_search"
    label = "Broad Knowledge Search"
    description = (
        "Search across Person, Project, Organization, and Document nodes using text "
        "matching. Returns combined results from all node types."
    )
    parameters = object_schema(
        {
            "query": {
                "type": "string",
                "description": (
                    "Search query to match across persons, projects, organizations, "
                    "and documents"
                ),
            },
            "limit": {
                "type": "number",
                "description": "Max results per node type (default 5)",
            },
        },
        required=["query"],
    )

    async def _search(
        self, category: str, cypher: str, query: str, limit: int
    ) -> list[dict[str, Any]]:
        try:
            records = await self.store.read(cypher, {"query": query, "limit": limit})
        except StoreError as e:
            logger.warning(f"Search over {category} failed: {e}")
            return []
        return [
            {"result": r.get("result"), "type": r.get("type"), "category": category}
            for r in records
        ]

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        query = read_str_param(args, "query", required=True)
        limit = read_number_param(args, "limit", integer=True) or 5

        batches = await asyncio.gather(
            *(
                self._search(category, cypher, query, limit)
                for category, cypher in SEARCH_QUERIES.items()
            )
        )
        results = [item for batch in batches for item in batch]

        return json_result({
            "results": results,
            "query": query,
            "total_count": len(results),
            "by_type": {
                category: sum(1 for r in results if r["category"] == category)
                for category in SEARCH_QUERIES
            },
            "found": bool(results),
        })


def graph_tools(store: GraphStore, cache: KeyValueCache | None = None) -> list[AgentTool]:
    """All knowledge-graph tools bound to a store and cache."""
    return [
        GetPersonDetails(store, cache),
        GetOrganizationProfile(store, cache),
        FindCollaborators(store, cache),
        GetProjectDetails(store, cache),
        FindSimilarProjects(store, cache),
        BroadVectorSearch(store, cache),
    ]

"""Bid analysis tools over the production knowledge graph."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import StoreError
from ..storage.protocols import GraphStore
from .base import (
    AgentTool,
    ToolOutput,
    json_result,
    object_schema,
    read_str_list_param,
    read_str_param,
)

logger = logging.getLogger(__name__)

DEFAULT_BID_ID = "bid_mj_v1_2025"
DEFAULT_PROJECT_ID = "proj_mj_spring_25"
DEFAULT_COMPANY = "London Alley"
DEFAULT_AESTHETIC = ["Gritty", "Grain"]

LIVE_SOURCE = "neo4j_live_data"

BID_ID_PARAM = {
    "type": "string",
    "description": f"Bid ID to analyze (default: {DEFAULT_BID_ID})",
}
PROJECT_ID_PARAM = {
    "type": "string",
    "description": f"Project ID (default: {DEFAULT_PROJECT_ID})",
}


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class BidTool(AgentTool):
    """Base for tools answering bid and crew questions from the graph."""

    source = "bid"

    def __init__(self, store: GraphStore):
        self.store = store


class ValidateLineProducerRate(BidTool):
    name = "validate_line_producer_rate"
    label = "Validate Line Producer Rate"
    description = (
        "Validate Line Producer rate against their profile. Checks if the bid rate "
        "matches their standard day rate."
    )
    parameters = object_schema({"bid_id": BID_ID_PARAM})

    QUERY = """
        MATCH (b:Bid {id: $bid_id})
        MATCH (b)-[:HAS_LINE_ITEM]->(li:LineItem {description: 'Line Producer'})
        MATCH (li)-[:ESTIMATES_ROLE]->(p:Person)-[:HAS_PROFILE]->(prof:ProducerProfile)
        RETURN p.fullName AS Talent,
               li.rate AS Bid_Rate,
               prof.dayRate AS Profile_Rate,
               CASE WHEN li.rate = prof.dayRate THEN 'MATCH' ELSE 'MISMATCH' END AS Status
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        bid_id = read_str_param(args, "bid_id") or DEFAULT_BID_ID

        try:
            records = await self.store.read(self.QUERY, {"bid_id": bid_id})
        except StoreError as e:
            return json_result(
                {"error": f"Failed to validate Line Producer rate: {e}", "found": False}
            )

        if not records:
            return json_result({
                "error": f"No Line Producer found for bid {bid_id}",
                "talent": None,
                "bid_rate": None,
                "profile_rate": None,
                "status": "NOT_FOUND",
            })

        record = records[0]
        return json_result({
            "talent": record.get("Talent"),
            "bid_rate": _number(record.get("Bid_Rate")),
            "profile_rate": _number(record.get("Profile_Rate")),
            "status": record.get("Status"),
            "source": LIVE_SOURCE,
        })


class GetDpFinancialBreakdown(BidTool):
    name = "get_dp_financial_breakdown"
    label = "Get DP Financial Breakdown"
    description = (
        "Get Director of Photography financial breakdown including representation, "
        "budget phases, line totals, and specialties."
    )
    parameters = object_schema({"bid_id": BID_ID_PARAM})

    QUERY = """
        MATCH (b:Bid {id: $bid_id})-[:HAS_LINE_ITEM]->(li:LineItem)
        WHERE li.description CONTAINS 'Director Of Photography'
        MATCH (li)-[:ESTIMATES_ROLE]->(p:Person)-[:HAS_PROFILE]->(prof:CinematographerProfile)
        RETURN p.fullName AS Talent,
               prof.agent AS Representation,
               li.category AS Budget_Phase,
               li.total AS Line_Total,
               prof.specialties AS Skills
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        bid_id = read_str_param(args, "bid_id") or DEFAULT_BID_ID

        try:
            records = await self.store.read(self.QUERY, {"bid_id": bid_id})
        except StoreError as e:
            return json_result({"error": f"Failed to get DP breakdown: {e}", "found": False})

        if not records:
            return json_result({
                "error": f"No DP found for bid {bid_id}",
                "talent": None,
                "representation": None,
                "total": 0,
            })

        line_totals = [_number(r.get("Line_Total")) for r in records]
        return json_result({
            "talent": records[0].get("Talent"),
            "representation": records[0].get("Representation"),
            "budget_phases": [r.get("Budget_Phase") for r in records],
            "line_totals": line_totals,
            "total": sum(line_totals),
            "skills": records[0].get("Skills") or [],
            "source": LIVE_SOURCE,
        })


class GetDirectorBrandFit(BidTool):
    name = "get_director_brand_fit"
    label = "Get Director Brand Fit"
    description = (
        "Analyze director's fit for a specific brand campaign. Returns visual style, "
        "genres, and previous brand work."
    )
    parameters = object_schema(
        {
            "director_name": {"type": "string", "description": "Director's full name"},
            "brand_name": {"type": "string", "description": "Brand/company name"},
        },
        required=["director_name", "brand_name"],
    )

    QUERY = """
        MATCH (p:Person {fullName: $director_name})-[:HAS_PROFILE]->(prof:DirectorProfile)
        OPTIONAL MATCH (p)-[r:HAS_BRAND_AFFINITY]->(c:Company {name: $brand_name})
        RETURN prof.visualSignature AS Visual_Style,
               prof.topGenres AS Genres,
               r.campaigns AS Previous_Campaigns
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        director = read_str_param(args, "director_name", required=True)
        brand = read_str_param(args, "brand_name", required=True)

        try:
            records = await self.store.read(
                self.QUERY, {"director_name": director, "brand_name": brand}
            )
        except StoreError as e:
            return json_result(
                {"error": f"Failed to analyze director fit: {e}", "found": False}
            )

        if not records:
            return json_result({
                "error": f"Director {director} not found",
                "visual_style": None,
                "genres": [],
                "previous_campaigns": [],
            })

        record = records[0]
        return json_result({
            "visual_style": record.get("Visual_Style"),
            "genres": record.get("Genres") or [],
            "previous_campaigns": record.get("Previous_Campaigns") or [],
            "director": director,
            "brand": brand,
            "source": LIVE_SOURCE,
        })


class FindDpByAesthetic(BidTool):
    name = "find_dp_by_aesthetic"
    label = "Find DP by Aesthetic"
    description = (
        "Find Director of Photography by visual aesthetic requirements like "
        "'Gritty', 'Film Grain', etc."
    )
    parameters = object_schema(
        {
            "project_id": PROJECT_ID_PARAM,
            "aesthetic_keywords": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Aesthetic keywords to match (default: ['Gritty', 'Grain'])",
            },
        }
    )

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        project_id = read_str_param(args, "project_id") or DEFAULT_PROJECT_ID
        keywords = read_str_list_param(args, "aesthetic_keywords") or DEFAULT_AESTHETIC

        # One parameter per keyword; values never enter the statement text
        conditions = " OR ".join(
            f"prof.visualAesthetic CONTAINS $kw_{i}" for i in range(len(keywords))
        )
        params: dict[str, Any] = {"project_id": project_id}
        params.update({f"kw_{i}": kw for i, kw in enumerate(keywords)})

        query = f"""
            MATCH (proj:Project {{id: $project_id}})
            MATCH (proj)<-[:SHOT]-(prof:CinematographerProfile)<-[:HAS_PROFILE]-(p:Person)
            WHERE {conditions}
            RETURN p.fullName AS DP,
                   prof.visualAesthetic AS Aesthetic,
                   prof.cameraPreference AS Kit
        """

        try:
            records = await self.store.read(query, params)
        except StoreError as e:
            return json_result({"error": f"Failed to find DP: {e}", "found": False})

        if not records:
            return json_result({
                "error": f"No DP found with aesthetics: {', '.join(keywords)}",
                "dp": None,
                "aesthetic": None,
                "camera_preference": None,
            })

        record = records[0]
        return json_result({
            "dp": record.get("DP"),
            "aesthetic": record.get("Aesthetic"),
            "camera_preference": record.get("Kit"),
            "project_id": project_id,
            "source": LIVE_SOURCE,
        })


class CheckCrewCollaboration(BidTool):
    name = "check_crew_collaboration"
    label = "Check Crew Collaboration"
    description = (
        "Check if two crew members have worked together before. Useful for "
        "validating crew chemistry."
    )
    parameters = object_schema(
        {
            "person1_name": {"type": "string", "description": "First person's full name"},
            "person2_name": {"type": "string", "description": "Second person's full name"},
        },
        required=["person1_name", "person2_name"],
    )

    QUERY = """
        MATCH (p1:Person {fullName: $person1_name})
        MATCH (p2:Person {fullName: $person2_name})
        MATCH (p1)-[r:WORKED_WITH]-(p2)
        RETURN p1.fullName AS Person1,
               r.context AS Relationship_Context,
               p2.fullName AS Person2
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        person1 = read_str_param(args, "person1_name", required=True)
        person2 = read_str_param(args, "person2_name", required=True)

        try:
            records = await self.store.read(
                self.QUERY, {"person1_name": person1, "person2_name": person2}
            )
        except StoreError as e:
            return json_result(
                {"error": f"Failed to check collaboration: {e}", "found": False}
            )

        if not records:
            return json_result({
                "person1": person1,
                "person2": person2,
                "have_worked_together": False,
                "relationship_context": None,
                "source": LIVE_SOURCE,
            })

        record = records[0]
        return json_result({
            "person1": record.get("Person1"),
            "person2": record.get("Person2"),
            "have_worked_together": True,
            "relationship_context": record.get("Relationship_Context"),
            "source": LIVE_SOURCE,
        })


class GetExecutiveProducerForProject(BidTool):
    name = "get_executive_producer_for_project"
    label = "Get Executive Producer"
    description = "Find the Executive Producer responsible for a project and its budget."
    parameters = object_schema({"project_id": PROJECT_ID_PARAM, "bid_id": BID_ID_PARAM})

    QUERY = """
        MATCH (u:User)-[r1:MANAGES]->(proj:Project {id: $project_id})
        MATCH (u)-[r2:PREPARED]->(bid:Bid {id: $bid_id})
        RETURN u.fullName AS Executive_Producer,
               u.email AS Email,
               r1.role AS Project_Role
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        project_id = read_str_param(args, "project_id") or DEFAULT_PROJECT_ID
        bid_id = read_str_param(args, "bid_id") or DEFAULT_BID_ID

        try:
            records = await self.store.read(
                self.QUERY, {"project_id": project_id, "bid_id": bid_id}
            )
        except StoreError as e:
            return json_result({"error": f"Failed to get EP: {e}", "found": False})

        if not records:
            return json_result({
                "error": f"No EP found for project {project_id} and bid {bid_id}",
                "executive_producer": None,
                "email": None,
                "project_role": None,
            })

        record = records[0]
        return json_result({
            "executive_producer": record.get("Executive_Producer"),
            "email": record.get("Email"),
            "project_role": record.get("Project_Role"),
            "project_id": project_id,
            "bid_id": bid_id,
            "source": LIVE_SOURCE,
        })


class AnalyzeHubNodeStatus(BidTool):
    name = "analyze_hub_node_status"
    label = "Analyze Hub Node Status"
    description = (
        "Analyze whether a company is a significant hub node in the database. "
        "Returns labels and connection count."
    )
    parameters = object_schema(
        {
            "company_name": {
                "type": "string",
                "description": f"Company name (default: {DEFAULT_COMPANY})",
            }
        }
    )

    QUERY = """
        MATCH (c:Company {name: $company_name})
        RETURN c.name AS Company,
               labels(c) AS All_Labels,
               c.isHubNode AS Is_Hub,
               COUNT { (c)--() } AS Total_Connections
    """

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        company = read_str_param(args, "company_name") or DEFAULT_COMPANY

        try:
            records = await self.store.read(self.QUERY, {"company_name": company})
        except StoreError as e:
            return json_result(
                {"error": f"Failed to analyze hub status: {e}", "found": False}
            )

        if not records:
            return json_result({
                "error": f"Company {company} not found",
                "company": company,
                "labels": [],
                "is_hub": False,
                "total_connections": 0,
            })

        record = records[0]
        return json_result({
            "company": record.get("Company"),
            "labels": record.get("All_Labels") or [],
            "is_hub": bool(record.get("Is_Hub")),
            "total_connections": record.get("Total_Connections") or 0,
            "source": LIVE_SOURCE,
        })


def bid_tools(store: GraphStore) -> list[AgentTool]:
    """All bid analysis tools bound to a graph store."""
    return [
        ValidateLineProducerRate(store),
        GetDpFinancialBreakdown(store),
        GetDirectorBrandFit(store),
        FindDpByAesthetic(store),
        CheckCrewCollaboration(store),
        GetExecutiveProducerForProject(store),
        AnalyzeHubNodeStatus(store),
    ]

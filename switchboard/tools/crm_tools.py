"""Folk CRM tools: contact search, contact profiles and groups."""

from __future__ import annotations

from typing import Any

from ..errors import ConfigurationError, StoreError
from ..storage.protocols import CrmClient
from .base import (
    AgentTool,
    ToolOutput,
    json_result,
    object_schema,
    read_number_param,
    read_str_param,
)

CRM_SOURCE = "folk_crm"


class CrmTool(AgentTool):
    source = "crm"

    def __init__(self, client: CrmClient):
        self.client = client


class SearchFolkContacts(CrmTool):
    name = "search_folk_contacts"
    label = "Search Folk Contacts"
    description = (
        "Search for contacts in Folk CRM by name or email. Returns matching "
        "contact profiles."
    )
    parameters = object_schema(
        {
            "query": {
                "type": "string",
                "description": "Name or email to search for in Folk CRM",
            },
            "limit": {
                "type": "number",
                "description": "Max results to return (default 10)",
            },
        },
        required=["query"],
    )

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        query = read_str_param(args, "query", required=True)
        limit = read_number_param(args, "limit", integer=True) or 10

        try:
            contacts = await self.client.search_contacts(query, limit=limit)
        except (StoreError, ConfigurationError) as e:
            return json_result(
                {"error": f"Folk search failed: {e}", "query": query, "found": False}
            )

        return json_result({
            "contacts": contacts,
            "query": query,
            "count": len(contacts),
            "found": bool(contacts),
            "source": CRM_SOURCE,
        })


class GetFolkContactDetails(CrmTool):
    name = "get_folk_contact_details"
    label = "Get Folk Contact Details"
    description = (
        "Get full contact profile from Folk CRM by contact ID. Includes all custom "
        "fields and tags."
    )
    parameters = object_schema(
        {"contact_id": {"type": "string", "description": "Folk contact ID to retrieve"}},
        required=["contact_id"],
    )

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        contact_id = read_str_param(args, "contact_id", required=True)

        try:
            contact = await self.client.get_contact(contact_id)
        except (StoreError, ConfigurationError) as e:
            return json_result({
                "error": f"Folk contact lookup failed: {e}",
                "contact_id": contact_id,
                "found": False,
            })

        return json_result({
            "contact": contact,
            "contact_id": contact_id,
            "found": True,
            "source": CRM_SOURCE,
        })


class ListFolkGroups(CrmTool):
    name = "list_folk_groups"
    label = "List Folk Groups"
    description = (
        "List all groups (lists) in Folk CRM. Groups organize contacts into "
        "categories."
    )
    parameters = object_schema(
        {"limit": {"type": "number", "description": "Max groups to return (default 20)"}}
    )

    async def execute(self, call_id: str, args: dict[str, Any]) -> ToolOutput:
        limit = read_number_param(args, "limit", integer=True) or 20

        try:
            groups = await self.client.list_groups(limit=limit)
        except (StoreError, ConfigurationError) as e:
            return json_result({"error": f"Folk groups listing failed: {e}", "found": False})

        return json_result({
            "groups": groups,
            "count": len(groups),
            "found": bool(groups),
            "source": CRM_SOURCE,
        })


def crm_tools(client: CrmClient) -> list[AgentTool]:
    """All Folk CRM tools bound to a client."""
    return [
        SearchFolkContacts(client),
        GetFolkContactDetails(client),
        ListFolkGroups(client),
    ]

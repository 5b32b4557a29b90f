"""Prompts for site exploration and action discovery."""

import json

EXAMPLE_CATALOG = {
    "actions": [
        {
            "name": "search_documentation",
            "description": "Search the documentation for a specific query",
            "parameters": [
                {
                    "name": "query",
                    "type": "string",
                    "description": "The search query to look up",
                    "required": True,
                },
            ],
            "steps": [
                "Click on the search input field",
                "Type {query} into the search field",
                "Press enter or click search button",
            ],
            "extractionSchema": {
                "results": "array of search result objects with title and url",
            },
        },
        {
            "name": "navigate_to_section",
            "description": "Navigate to a specific section of the documentation",
            "parameters": [
                {
                    "name": "sectionName",
                    "type": "string",
                    "description": "Name of the section to navigate to",
                    "required": True,
                },
            ],
            "steps": [
                "Find the {sectionName} section in the navigation menu",
                "Click on the {sectionName} link",
            ],
        },
    ]
}


def get_discovery_system_prompt() -> str:
    """System prompt for the exploration agent, with the required output format."""
    example_json = json.dumps(EXAMPLE_CATALOG, indent=2)
    return f"""You are a web automation analyst. Your job is to explore this ENTIRE website and identify the most useful actions a user might want to automate.

EXPLORATION STRATEGY:
1. Navigate through the main sections of the website
2. Click on navigation links, menus, and key areas
3. Identify patterns and common workflows
4. Focus on CRUD operations (Create, Read, Update, Delete) and data retrieval

CRITICAL: You MUST respond with ONLY valid JSON in this EXACT format, with no additional text:

{example_json}

RULES:
- Return ONLY the JSON object, nothing else
- Each action MUST have: name (snake_case), description, parameters (array), steps (array)
- parameters: REQUIRED field, array of parameter objects with name, type, description, required
  - type must be one of "string", "number", "boolean"
  - Include parameters for ANY action that needs user input (search query, item name, etc.)
  - Use empty array [] only if action truly needs no input
- steps: Use {{parameterName}} placeholder syntax in steps where parameters should be inserted
  - Example: "Type {{query}} into search field" or "Click on {{sectionName}} link"
  - This allows the generated code to interpolate the actual parameter values
- extractionSchema: optional but recommended for data retrieval actions
- Action names must be unique
- Focus on 5-10 most useful and realistic actions
- Make sure steps are specific and actionable"""


def get_discovery_instruction(domain: str) -> str:
    """Task given to the exploration agent."""
    return (
        f"Explore the ENTIRE website {domain} thoroughly. Navigate through different pages, sections, and features. "
        "Identify the top 5-10 most useful actions a user might want to automate. "
        "Focus on CRUD operations and data retrieval. Return ONLY the JSON object, no additional text."
    )

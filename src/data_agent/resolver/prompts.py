"""
System and user prompts for the completion capability.

Every prompt asks for a single JSON object; the response shapes are the
ones the classify/rank/generate/validate steps parse.
"""

import json
from typing import Any, Optional, Sequence

from data_agent.models.artifact import Artifact

VISUALIZATION_GUIDE = """\
- single-metric: one number (total, average, count, min, max, percentage).
  e.g. "What is total revenue?", "How many customers?". Query returns one row with a column aliased "value".
  config: formatter (currency|number|percentage), gradient, icon
- time-series: trends over time. e.g. "Revenue trend", "Monthly orders".
  config: xKey, yKey, colors, height
- categorical-comparison: comparing categories, rankings, distributions. e.g. "Revenue by region", "Top 10 products".
  config: xKey, yKey, colors, height
- proportion: shares and composition. e.g. "Revenue share by category".
  config: nameKey, valueKey, colors, height
- tabular: detailed lists with several attributes. e.g. "List recent orders".
  config: columns, pageSize"""


def _schema_block(schema_doc: str) -> str:
    return f"Database Schema:\n{schema_doc or 'No schema available'}"


def classification_system(schema_doc: str) -> str:
    return f"""You classify questions asked of a data agent.

{_schema_block(schema_doc)}

Question types:
- analytical: the user wants to see, measure, compare or explore data
- data_modification: the user wants to create, update or delete records
- general: greetings, help requests and anything not about the data

Visualization types (only for analytical questions):
{VISUALIZATION_GUIDE}

List every visualization the question needs, in the order they should appear.
Set needsMultiple to true when the question asks for more than one view
(e.g. "show total orders and list them").

Respond with a JSON object:
{{
  "questionType": "analytical" | "data_modification" | "general",
  "visualizations": ["single-metric", ...],
  "needsMultiple": boolean,
  "reasoning": "brief explanation"
}}"""


def classification_user(prompt: str) -> str:
    return f'User question: "{prompt}"\n\nClassify this question.'


def _catalog_listing(artifacts: Sequence[Artifact]) -> str:
    entries = []
    for idx, artifact in enumerate(artifacts, start=1):
        entries.append(
            f"{idx}. ID: {artifact.id}\n"
            f"   Name: {artifact.name}\n"
            f"   Type: {artifact.type}\n"
            f"   Category: {artifact.category or 'general'}\n"
            f"   Description: {artifact.description or 'No description'}\n"
            f"   Keywords: {', '.join(artifact.keywords)}"
        )
    return "\n\n".join(entries)


def ranking_system(artifacts: Sequence[Artifact]) -> str:
    return f"""You match user requests to the most appropriate data visualization component.

Available Components ({len(artifacts)} total):
{_catalog_listing(artifacts)}

Matching guidelines:
1. Understand the intent: a single metric, a trend over time, a comparison of
   categories, a proportion, or a detailed list.
2. Match the component type to that intent.
3. Match the user's terms against keywords, allowing synonyms
   ("sales" = "revenue", "items" = "products").
4. Prefer specific components over generic ones.

Respond with a JSON object:
{{
  "componentIndex": <1-based index of the best component, or null>,
  "componentId": "<id of the best component>",
  "reasoning": "why this component was chosen",
  "confidence": <0-100>,
  "alternativeMatches": [{{"index": <n>, "id": "<id>", "score": <0-100>, "reason": "..."}}]
}}

Only return a component when confidence is at least 30; return null otherwise.
Give at most two alternative matches."""


def ranking_user(prompt: str) -> str:
    return (
        f'User request: "{prompt}"\n\n'
        "Find the best matching component and explain your reasoning with a confidence score."
    )


def rerank_system(prompt: str, candidates: Sequence[Artifact]) -> str:
    listing = "\n".join(
        f"{idx}. {a.name} ({a.type}): {a.description or 'No description'}"
        for idx, a in enumerate(candidates, start=1)
    )
    return f"""You select the best matching component from a ranked list.

User request: "{prompt}"

Top {len(candidates)} candidates (ordered by vector similarity):
{listing}

Rules:
- VIEW/SEE/DISPLAY/GET/SHOW data -> data-table components
- CREATE/ADD/INSERT data -> form components (not update forms)
- EDIT/UPDATE/MODIFY data -> update/edit form components
- analytics/insights -> dashboard/chart components

Respond with a JSON object:
{{
  "componentIndex": <number 1-{len(candidates)}>,
  "reasoning": "<brief explanation>"
}}"""


RERANK_USER = "Select the best component"


def generation_system(schema_doc: str, visualization: Optional[str], row_limit: int) -> str:
    if visualization:
        type_rule = f'The visualization type is fixed: "{visualization}". Build the query and config for it.'
    else:
        type_rule = "Choose the visualization type that best answers the question."
    return f"""You are an expert data analyst that designs one visualization and its SQL query.

{_schema_block(schema_doc)}

Visualization types:
{VISUALIZATION_GUIDE}

{type_rule}

Query rules:
- Use the exact table and column names from the schema.
- Add filters, aggregations and sorting the question implies.
- ALWAYS include a LIMIT clause (default: {row_limit} rows).

Respond with a JSON object:
{{
  "visualizationType": "single-metric" | "time-series" | "categorical-comparison" | "proportion" | "tabular",
  "query": "SQL query",
  "title": "short title",
  "description": "what the data shows, including filters",
  "config": {{ type-specific config }},
  "reasoning": "why this visualization and query",
  "canGenerate": boolean
}}

Set canGenerate to false when the question is vague, ambiguous or unrelated to the available data."""


def generation_user(prompt: str) -> str:
    return (
        f'User question: "{prompt}"\n\n'
        "Analyze this question and generate the visualization with its SQL query."
    )


def multi_generation_system(schema_doc: str, visualizations: Sequence[str], row_limit: int) -> str:
    requested = "\n".join(f"{idx}. {v}" for idx, v in enumerate(visualizations, start=1))
    return f"""You are an expert data analyst that designs a small dashboard answering one question.

{_schema_block(schema_doc)}

Visualization types:
{VISUALIZATION_GUIDE}

Build exactly these visualizations, in this order:
{requested}

Query rules:
- Use the exact table and column names from the schema.
- Every query must ALWAYS include a LIMIT clause (default: {row_limit} rows).

Respond with a JSON object:
{{
  "title": "dashboard title",
  "description": "what the dashboard shows",
  "reasoning": "how the views answer the question",
  "canGenerate": boolean,
  "components": [
    {{"visualizationType": "<type>", "query": "SQL", "title": "...", "description": "...", "config": {{ }} }}
  ]
}}

"components" must have one entry per requested visualization, in the requested order."""


def props_validation_system(artifact: Artifact, schema_doc: str, row_limit: int) -> str:
    return f"""You adapt an existing component's props to a new user request.

Component name: {artifact.name}
Component type: {artifact.type}
Component description: {artifact.description or 'No description'}

Props structure:
{{
  query?: string,        // SQL query that fetches the data
  title?: string,
  description?: string,
  config?: object        // type-specific display configuration
}}

{_schema_block(schema_doc)}

1. Query: change it only if the request needs different data, filters, time
   ranges, limits or aggregations. Keep the column aliases the component
   expects (e.g. "value" for a single metric). ALWAYS include a LIMIT clause
   (default: {row_limit} rows).
2. Title and description: update them to describe what is now shown.
3. Config: change it only if the user explicitly asks.

Respond with a JSON object:
{{
  "props": {{ complete props object }},
  "isModified": boolean,
  "reasoning": "brief explanation",
  "modifications": ["each change made"]
}}

Return the COMPLETE props object, not only the changed fields."""


def props_validation_user(prompt: str, props: dict[str, Any], artifact_type: str) -> str:
    return (
        f'User request: "{prompt}"\n\n'
        f"Current props:\n{json.dumps(props, indent=2)}\n\n"
        f"Component type: {artifact_type}\n\n"
        "Modify the props for this request and return the complete props object."
    )

"""Prompts published by the MCP server."""

from typing import Optional

from pydantic import BaseModel

CONNECT_PROMPT_NAME = "Connect to Strapi"

CONNECT_PROMPT_TEXT = """# Working with Strapi through these tools

## 1. Discover the schema first
Call `list-servers` to see which servers are configured, then
`get-content-types` for the server you want to work with. Every content type
reports three names:

```json
{"singularName": "article", "pluralName": "articles", "collectionName": "articles"}
```

REST endpoints are built from `pluralName`: `api/articles`, `api/articles/1`.
Use `get-components` to inspect reusable component structures.

## 2. Reading data
`rest-call` with the default method GET. Filters, sorting, population and
pagination are nested objects in `params`:

```json
{
  "server": "prod",
  "endpoint": "api/articles",
  "params": {
    "filters": {"title": {"$contains": "release"}},
    "sort": ["publishedAt:desc"],
    "populate": "*",
    "pagination": {"page": 1, "pageSize": 25}
  }
}
```

## 3. Strapi 4 and Strapi 5
Strapi 4 wraps entries as `data: {id, attributes: {...}}` and addresses them
by numeric `id`. Strapi 5 returns flat entries and addresses them by
`documentId`; `list-servers` shows which version each server runs.

## 4. Changing data
POST, PUT and DELETE calls and media uploads change the backend. For each one:

1. Fetch the complete current entry first.
2. Show the user exactly what will change.
3. Ask for explicit confirmation.
4. Only then repeat the call with `"authorized": true`.

Updates must send the complete object; fields left out may be cleared.

## 5. Media
`upload-media` downloads an image from `sourceUrl`, optionally converts it
(`jpeg`, `png`, `webp`) and uploads it. Link the returned file id to an
entry's media field with a follow-up `rest-call`.
"""


class PromptDefinition(BaseModel):
    name: str
    description: str
    text: str


PROMPTS: dict[str, PromptDefinition] = {
    CONNECT_PROMPT_NAME: PromptDefinition(
        name=CONNECT_PROMPT_NAME,
        description=(
            "Start a conversation with an expert who understands both Strapi v4 and v5, "
            "their differences, and how to use these tools safely"
        ),
        text=CONNECT_PROMPT_TEXT,
    ),
}


def get_prompt(name: str) -> Optional[PromptDefinition]:
    return PROMPTS.get(name)

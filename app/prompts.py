# -*- coding: utf-8 -*-

# Page title the building-rights tables live under
BUILDING_RIGHTS_TITLE = "טבלת זכויות והוראות בניה - מצב מוצע"

# === Table extraction (PDF -> JSON tables) ===
TABLES_EXTRACTION_PROMPT = f"""
You are analyzing a PDF document. Find all tables that appear under pages with the title "{BUILDING_RIGHTS_TITLE}" or similar variations.

For each table found, extract its complete data structure preserving all rows and columns.

Return ONLY one JSON object in the following format:
{{
  "tables": [
    {{
      "pageNumber": <page number>,
      "title": "<table title if any>",
      "headers": ["header1", "header2", ...],
      "rows": [
        ["cell1", "cell2", ...],
        ["cell1", "cell2", ...]
      ]
    }}
  ]
}}

Important:
- Preserve the exact structure of each table including merged cells
- Keep all Hebrew text as-is
- Include empty cells as empty strings
- Tables may have different structures - adapt accordingly
- If no such table exists, return {{"tables": []}}
"""

# Response schema handed to the model alongside the prompt
TABLES_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "tables": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "pageNumber": {"type": "INTEGER", "nullable": True},
                    "title": {"type": "STRING", "nullable": True},
                    "headers": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "rows": {
                        "type": "ARRAY",
                        "items": {"type": "ARRAY", "items": {"type": "STRING"}},
                    },
                },
                "required": ["headers", "rows"],
            },
        },
    },
    "required": ["tables"],
}

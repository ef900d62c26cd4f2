"""
Text representation of graph entities for embedding.

The write side embeds entities with these strings; queries are embedded
as raw message text.
"""

from typing import Any, Mapping


def format_entity_for_embedding(entity_type: str, entity: Mapping[str, Any]) -> str:
    """
    Build the text embedded for a Topic, Person, Event or Company node.

    Example:
        >>> format_entity_for_embedding("Person", {"name": "John", "occupation": "engineer", "company": "Google"})
        'John, engineer at Google'
    """
    entity_type = getattr(entity_type, "value", entity_type)
    name = entity.get("name", "")
    notes = entity.get("notes")

    if entity_type == "Topic":
        text = name
        if entity.get("category"):
            text += f". Category: {entity['category']}"
        if notes:
            text += f". {notes}"
        return text

    if entity_type == "Person":
        text = name
        if entity.get("occupation"):
            text += f", {entity['occupation']}"
        if entity.get("company"):
            text += f" at {entity['company']}"
        if notes:
            text += f". {notes}"
        return text

    if entity_type == "Event":
        text = name
        if entity.get("date"):
            text += f" on {entity['date']}"
        if entity.get("description"):
            text += f". {entity['description']}"
        return text

    if entity_type == "Company":
        text = name
        if entity.get("industry"):
            text += f" in {entity['industry']}"
        if notes:
            text += f". {notes}"
        return text

    return name

"""
Projection of identification results onto the add-plant form.
"""

from app.core.care_templates import generate_care_info
from app.models.identification import UNKNOWN, FormFields, PlantDetails

NOTES_PREVIEW_LENGTH = 150


def build_notes(details: PlantDetails) -> str:
    """
    Seed the notes field: a description preview followed by bulleted
    care sentences. Empty when the match has no description.
    """
    if not details.description:
        return ""

    care_lines = "\n".join(f"• {sentence}" for sentence in generate_care_info(details).values())
    return f"{details.description[:NOTES_PREVIEW_LENGTH]}...\n\n{care_lines}"


def project_form(details: PlantDetails) -> FormFields:
    """
    Derive editable form values from an identification result.

    A distinct common name becomes the plant name with the scientific
    name as its type; otherwise the scientific name is used and the type
    is marked "Unknown".
    """
    if details.has_distinct_common_name:
        plant_name = details.all_common_names[0]
        plant_type = details.scientific_name
    else:
        plant_name = details.scientific_name
        plant_type = UNKNOWN

    return FormFields(plant_name=plant_name, plant_type=plant_type, notes=build_notes(details))

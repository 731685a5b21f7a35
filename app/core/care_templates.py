"""
Care and growing information templates.

These are static sentences parameterized by a plant's taxonomy and common
name. They are not derived from any care database; they give a starting
point for the notes a user can edit before saving a plant.
"""

from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from app.models.identification import PlantDetails


# Care info (seeded into notes, in this order)
CARE_INFO_TEMPLATES: Dict[str, str] = {
    "watering": "Most {family} plants need regular watering when soil is dry to touch.",
    "light": "Many plants in the {genus} genus prefer bright, indirect light.",
    "soil": "Well-draining soil mix is typically recommended for {common_name}.",
    "humidity": "Monitor humidity levels based on {common_name}'s natural habitat.",
    "temperature": "Ideal temperature range is typically 65-80°F (18-27°C).",
    "fertilizing": "Feed with balanced, water-soluble fertilizer during growing season.",
    "pruning": "Prune occasionally to maintain shape and remove damaged leaves.",
    "repotting": "Repot every 1-2 years or when rootbound.",
    "propagation": "Can be propagated by division or stem cuttings.",
    "toxicity": "Check specific sources for toxicity information.",
}

# Growing info (shown alongside identification results)
GROWING_INFO_TEMPLATES: Dict[str, str] = {
    "native_region": "Native to regions where {genus} plants naturally grow.",
    "growth_habit": "{common_name} typically grows as a {family_lower} plant.",
    "mature_size": "Varies by species and growing conditions.",
    "growth_rate": "Moderate growth rate in optimal conditions.",
    "lifespan": "Perennial plant with proper care.",
    "flowering_season": "Flowering depends on species and care conditions.",
    "companion_plants": "Research companion plants suitable for your specific variety.",
    "common_problems": "Watch for common pests like spider mites and scale insects.",
    "disease_resistance": "Generally resistant to diseases with proper care.",
}


def _template_values(details: "PlantDetails") -> Dict[str, str]:
    return {
        "family": details.family,
        "family_lower": details.family.lower(),
        "genus": details.genus,
        "common_name": details.common_name,
    }


def generate_care_info(details: "PlantDetails") -> Dict[str, str]:
    """
    Fill the care templates for an identified plant.

    Args:
        details: Normalized identification result

    Returns:
        Ordered mapping of care topic to sentence
    """
    values = _template_values(details)
    return {topic: template.format(**values) for topic, template in CARE_INFO_TEMPLATES.items()}


def generate_growing_info(details: "PlantDetails") -> Dict[str, str]:
    """Fill the growing-info templates for an identified plant."""
    values = _template_values(details)
    return {
        topic: template.format(**values) for topic, template in GROWING_INFO_TEMPLATES.items()
    }

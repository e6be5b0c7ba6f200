from typing import Protocol

from stylist.wardrobe.schemas import Garment, Material, Pattern

MAX_DESCRIPTION_TAGS = 3


def _humanize(value: str) -> str:
    return value.replace("_", " ")


class GarmentFormatter(Protocol):
    """Garment description formatter interface

    Renders a garment as short natural-language text for the judge prompt.
    """

    def format(self, garment: Garment) -> str:
        """Build the description

        Args:
            garment: garment snapshot

        Returns:
            comma-separated description text
        """
        ...


class StructuredFormatter:
    """Describes a garment from its structured attributes only.

    Example output:
        "top, navy and white, linen, relaxed fit, striped, preppy style, breathable"
    """

    def format(self, garment: Garment) -> str:
        parts = [garment.category.value]

        if garment.secondary_color:
            parts.append(f"{garment.primary_color} and {garment.secondary_color}")
        else:
            parts.append(garment.primary_color)

        # texture matters for the judge's compatibility reasoning
        if garment.material != Material.UNKNOWN:
            parts.append(_humanize(garment.material.value))

        parts.append(f"{_humanize(garment.fit.value)} fit")

        if garment.pattern != Pattern.SOLID:
            parts.append(_humanize(garment.pattern.value))

        parts.append(f"{_humanize(garment.style_bucket.value)} style")

        # bounded to keep prompts small
        parts.extend(garment.tags[:MAX_DESCRIPTION_TAGS])

        return ", ".join(parts)


class HybridFormatter:
    """Prefers the caption service's dense caption, enriched with vibe and era.

    Falls back to the structured description when the garment has not been
    captioned yet.
    """

    def __init__(self, fallback: GarmentFormatter | None = None) -> None:
        self.fallback: GarmentFormatter = fallback or StructuredFormatter()

    def format(self, garment: Garment) -> str:
        if not garment.dense_caption:
            return self.fallback.format(garment)

        parts = [garment.dense_caption]

        vibe = garment.primary_vibe
        if vibe:
            parts.append(f"{vibe} vibe")

        if garment.is_vintage:
            parts.append(f"era: {garment.era_detected}")

        return ", ".join(parts)

"""
Compatibility rules

Stateless predicates over garment attributes. The pre-filter is a safety net,
not a stylist: it only removes combinations that are objectively broken and
leaves taste to the external judge.
"""

from stylist.outfit.schemas import RuleMode, WeatherContext
from stylist.wardrobe.schemas import Category, Formality, Garment, Material, Pattern, Seasonality

# ============================================================
# Color
# ============================================================

NEUTRAL_COLORS = frozenset({
    "black", "white", "gray", "grey", "navy", "beige",
    "cream", "tan", "brown", "charcoal", "ivory", "khaki",
})

# Mutually exclusive neon pairs. Keep this list short.
HARD_CLASHES: dict[str, frozenset[str]] = {
    "neon_green": frozenset({"neon_pink", "neon_orange"}),
    "neon_pink": frozenset({"neon_green", "neon_yellow"}),
    "neon_orange": frozenset({"neon_green", "neon_purple"}),
}

COMPLEMENTARY_PAIRS = frozenset({
    frozenset({"blue", "orange"}),
    frozenset({"red", "green"}),
    frozenset({"yellow", "purple"}),
    frozenset({"pink", "green"}),
    frozenset({"navy", "mustard"}),
})


def normalize_color(color: str) -> str:
    return color.strip().lower().replace(" ", "_").replace("-", "_")


def is_neutral(color: str) -> bool:
    return normalize_color(color) in NEUTRAL_COLORS


def colors_clash(color1: str, color2: str) -> bool:
    c1, c2 = normalize_color(color1), normalize_color(color2)

    if c1 in NEUTRAL_COLORS or c2 in NEUTRAL_COLORS:
        return False

    return c2 in HARD_CLASHES.get(c1, ()) or c1 in HARD_CLASHES.get(c2, ())


def colors_harmonize(color1: str, color2: str) -> bool:
    """Scoring bonus only, never a filter."""
    c1, c2 = normalize_color(color1), normalize_color(color2)

    if c1 == c2:
        return True
    if c1 in NEUTRAL_COLORS or c2 in NEUTRAL_COLORS:
        return True
    return frozenset({c1, c2}) in COMPLEMENTARY_PAIRS


# ============================================================
# Formality
# ============================================================

FORMALITY_THRESHOLDS = {
    RuleMode.LOOSE: 3,  # athleisure + blazer still passes
    RuleMode.NORMAL: 2,
    RuleMode.STRICT: 1,
}

OCCASION_FORMALITY = {
    "work": Formality.BUSINESS,
    "office": Formality.BUSINESS,
    "meeting": Formality.BUSINESS,
    "date": Formality.SMART_CASUAL,
    "dinner": Formality.SMART_CASUAL,
    "casual": Formality.CASUAL,
    "weekend": Formality.CASUAL,
    "brunch": Formality.CASUAL,
    "formal": Formality.FORMAL,
    "wedding": Formality.FORMAL,
    "event": Formality.FORMAL,
    "gym": Formality.VERY_CASUAL,
    "workout": Formality.VERY_CASUAL,
    "lounge": Formality.VERY_CASUAL,
}


def occasion_to_formality(occasion: str) -> Formality:
    return OCCASION_FORMALITY.get(occasion.strip().lower(), Formality.CASUAL)


def formalities_compatible(f1: Formality, f2: Formality, mode: RuleMode) -> bool:
    if mode == RuleMode.DISABLED:
        return True
    return f1.distance(f2) <= FORMALITY_THRESHOLDS[mode]


# ============================================================
# Pattern
# ============================================================

SAFE_PATTERN_COMBOS: dict[Pattern, frozenset[Pattern]] = {
    Pattern.STRIPED: frozenset({Pattern.SOLID, Pattern.POLKA_DOT}),
    Pattern.PLAID: frozenset({Pattern.SOLID}),
    Pattern.FLORAL: frozenset({Pattern.SOLID, Pattern.STRIPED}),
    Pattern.GEOMETRIC: frozenset({Pattern.SOLID}),
}


def patterns_compatible(p1: Pattern, p2: Pattern, mode: RuleMode) -> bool:
    if p1 == Pattern.SOLID or p2 == Pattern.SOLID:
        return True

    # outside strict mode the judge arbitrates pattern mixing
    if mode != RuleMode.STRICT:
        return True

    if p1 == p2:
        return False

    return p2 in SAFE_PATTERN_COMBOS.get(p1, ()) or p1 in SAFE_PATTERN_COMBOS.get(p2, ())


# ============================================================
# Weather
# ============================================================

HEAVY_MATERIALS = frozenset({Material.WOOL, Material.FLEECE, Material.CASHMERE})
HEAVY_MATERIAL_MAX_F = 80
LINEN_MIN_F = 45
OPEN_TOE_MARKERS = ("open", "sandal")


def _season_excluded(seasonality: Seasonality, weather: WeatherContext) -> bool:
    match seasonality:
        case Seasonality.SUMMER:
            return weather.is_cold
        case Seasonality.WINTER:
            return weather.is_hot
        case Seasonality.SPRING_FALL | Seasonality.ALL_SEASON:
            return False


def _material_excluded(material: Material, weather: WeatherContext) -> bool:
    if material in HEAVY_MATERIALS:
        return weather.temp_f > HEAVY_MATERIAL_MAX_F
    if material == Material.LINEN:
        return weather.temp_f < LINEN_MIN_F
    return False


def _is_open_toe(garment: Garment) -> bool:
    return any(
        marker in tag.lower() for tag in garment.tags for marker in OPEN_TOE_MARKERS
    )


def _category_excluded(garment: Garment, weather: WeatherContext) -> bool:
    match garment.category:
        case Category.SHOES:
            return (weather.is_rainy or weather.is_snowy) and _is_open_toe(garment)
        case Category.TOP | Category.BOTTOM | Category.OUTERWEAR | Category.ACCESSORY:
            return False


def appropriate_for_weather(garment: Garment, weather: WeatherContext) -> bool:
    """Hard rule: safety, not style."""
    return not (
        _season_excluded(garment.seasonality, weather)
        or _material_excluded(garment.material, weather)
        or _category_excluded(garment, weather)
    )

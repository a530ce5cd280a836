"""
Static skincare advice keyed by skin type and goal.

Used whenever the AI reply can't be obtained or understood. Every SkinType
has an entry, every SkinGoal has a fragment, and DEFAULT_INSIGHTS covers an
absent or unknown skin type.
"""

from typing import Iterable, Optional

from clearday.schemas import FallbackInsights, SkinGoal, SkinType


SKIN_TYPE_INSIGHTS: dict[SkinType, FallbackInsights] = {
    SkinType.OILY: FallbackInsights(
        insights=[
            "Look for non-comedogenic and oil-free formulations to prevent clogged pores",
            "Gel-based textures typically work better than creams for oily skin types",
            "Salicylic acid and niacinamide can help control excess oil production",
        ],
        recommendation="Focus on lightweight, oil-controlling products with ingredients like salicylic acid",
    ),
    SkinType.DRY: FallbackInsights(
        insights=[
            "Choose products with hydrating ingredients like hyaluronic acid and glycerin",
            "Cream-based formulations provide more moisture and barrier support",
            "Avoid alcohol-heavy products that can strip natural oils and cause dryness",
        ],
        recommendation="Prioritize hydrating and barrier-supporting ingredients like ceramides and hyaluronic acid",
    ),
    SkinType.COMBINATION: FallbackInsights(
        insights=[
            "Balance is key - treat different zones differently with targeted products",
            "Lightweight moisturizers work well for combination skin without being too heavy",
            "Avoid overly heavy or overly drying products that can disrupt skin balance",
        ],
        recommendation="Use balanced formulations that address both oily and dry areas effectively",
    ),
    SkinType.SENSITIVE: FallbackInsights(
        insights=[
            "Always patch test new products for 24-48 hours before full application",
            "Look for fragrance-free and hypoallergenic formulas to minimize irritation",
            "Start with lower concentrations of active ingredients to assess tolerance",
        ],
        recommendation="Choose gentle formulations with minimal irritants and proven soothing ingredients",
    ),
    SkinType.NORMAL: FallbackInsights(
        insights=[
            "Most products are well-tolerated by normal skin types, but consistency is key",
            "Focus on maintaining your skin's natural balance and preventing future issues",
            "Prevention is easier than correction - establish a solid maintenance routine",
        ],
        recommendation="Maintain your current routine with supportive products that preserve skin health",
    ),
}

GOAL_INSIGHTS: dict[SkinGoal, str] = {
    SkinGoal.ACNE: "Consider ingredients like salicylic acid, benzoyl peroxide, or retinoids for breakouts",
    SkinGoal.GLOW: "Look for vitamin C, niacinamide, and gentle exfoliants for radiant skin",
    SkinGoal.HYDRATE: "Hyaluronic acid, glycerin, and ceramides are beneficial for moisture retention",
    SkinGoal.PROTECT: "Antioxidants and SPF-containing products are essential for skin protection",
}

DEFAULT_INSIGHTS = FallbackInsights(
    insights=[
        "Research key ingredients before trying new products to ensure compatibility",
        "Start with patch testing to check for adverse reactions",
        "Introduce new products one at a time to identify any issues",
    ],
    recommendation="Build your routine gradually and monitor results carefully",
)


def fallback_insights(
    skin_type: Optional[SkinType] = None,
    goals: Optional[Iterable[SkinGoal]] = None,
) -> FallbackInsights:
    """Look up advice for a skin type, appending goal fragments in goal order."""
    base = SKIN_TYPE_INSIGHTS.get(skin_type, DEFAULT_INSIGHTS) if skin_type else DEFAULT_INSIGHTS

    fragments = [GOAL_INSIGHTS[goal] for goal in (goals or []) if goal in GOAL_INSIGHTS]
    if not fragments:
        return base

    return FallbackInsights(
        insights=list(base.insights),
        recommendation=f"{base.recommendation}. {' '.join(fragments)}.",
    )

import re

from spoken_ledger.domain.rules import Rule, constant, first_match
from spoken_ledger.models import CategorizationResult, CategoryBucket


def _rule(name: str, pattern: str, bucket: CategoryBucket) -> Rule[CategoryBucket]:
    return Rule(name, re.compile(pattern, re.IGNORECASE | re.DOTALL), constant(bucket))


# Top to bottom, first match wins. Snacks beat "movie", bill phrases beat "rent".
KEYWORD_RULES: tuple[Rule[CategoryBucket], ...] = (
    _rule(
        "snacks",
        r"\b(popcorn|nachos|candy|candybar|concessions?|soda|soft drink|chips|snacks?|latte|espresso)\b",
        CategoryBucket.FOOD,
    ),
    _rule(
        "dining_bar",
        r"^(?=.*\bbar\b)(?=.*\b(grill|kitchen|restaurant|bistro|tavern|pub|eatery|food)\b)",
        CategoryBucket.FOOD,
    ),
    _rule(
        "entertainment",
        r"\b(movies?|cinema|theater|theatre|concerts?|netflix|spotify|hulu|disney|streaming|games?|"
        r"nightclub|club|lounge|disco|bar|tickets?)\b",
        CategoryBucket.ENTERTAINMENT,
    ),
    _rule(
        "food",
        r"\b(restaurant|grill|cafe|coffee|starbucks|bistro|eatery|diner|pizzeria|bakery|buffet|"
        r"steakhouse|seafood|food|grocery|groceries|grocer|supermarket|deli|meal|eat|lunch|dinner|"
        r"breakfast|brunch|burger|pizza|sandwich|taco|sushi|pasta|salad|wings|bbq|barbecue)\b",
        CategoryBucket.FOOD,
    ),
    _rule(
        "utility_bill",
        r"\b(electric bill|electricity bill|gas bill|water bill|sewer bill|trash bill|garbage bill|"
        r"phone bill|internet bill|cable bill|utility bill)\b",
        CategoryBucket.UTILITIES,
    ),
    _rule(
        "rent",
        r"\b(rent|landlord|apartment|lease|mortgage)\b",
        CategoryBucket.RENT,
    ),
    _rule(
        "utilities",
        r"\b(utility|utilities|electric|electricity|power|water|gas(?!\s+station)|sewer|sewage|trash|"
        r"garbage|internet|phone|bill|service charge)\b",
        CategoryBucket.UTILITIES,
    ),
    _rule(
        "transportation",
        r"\b(uber|lyft|taxi|cab|bus|train|metro|subway|transit|transport|transportation|rail|"
        r"gas station|fuel|parking|fare|ride)\b",
        CategoryBucket.TRANSPORTATION,
    ),
    _rule(
        "travel",
        r"\b(flights?|airline|airfare|hotel|airbnb|expedia|booking|vacation|resort|travel)\b",
        CategoryBucket.TRAVEL,
    ),
    _rule(
        "gift",
        r"\b(gifts?|present|donation|charity)\b",
        CategoryBucket.GIFT,
    ),
)

# Remote model labels are short class names ("Restaurants", "Gas & Fuel").
LABEL_RULES: tuple[Rule[CategoryBucket], ...] = (
    _rule(
        "food",
        r"(food|restaurant|coffee|cafe|grocery|groceries|grocer|supermarket|deli|meal|eat|starbuck|"
        r"subway|burger|pizza)",
        CategoryBucket.FOOD,
    ),
    _rule("rent", r"(rent|landlord|apartment|lease|mortgage)", CategoryBucket.RENT),
    _rule(
        "utilities",
        r"(utility|electric|water|gas|internet|phone|service charge|utility bill)",
        CategoryBucket.UTILITIES,
    ),
    _rule(
        "transportation",
        r"(uber|lyft|taxi|bus|train|metro|transit|transport|rail|gas station|fuel|ride)",
        CategoryBucket.TRANSPORTATION,
    ),
    _rule(
        "entertainment",
        r"\b(movie|movies|netflix|spotify|concert|theater|theatre|entertainment|game|bar|club|cinema)\b",
        CategoryBucket.ENTERTAINMENT,
    ),
    _rule(
        "travel",
        r"(flight|airline|hotel|airbnb|travel|delta|expedia|booking)",
        CategoryBucket.TRAVEL,
    ),
    _rule("gift", r"(gift|present|donation|charity)", CategoryBucket.GIFT),
)


def classify_by_keywords(text: str | None) -> CategoryBucket:
    if not text:
        return CategoryBucket.MISC
    found = first_match(KEYWORD_RULES, text)
    if found is None:
        return CategoryBucket.MISC
    return found[1]


def map_label_to_bucket(label: str | None) -> CategoryBucket:
    if not label:
        return CategoryBucket.MISC
    try:
        return CategoryBucket(label.strip().lower())
    except ValueError:
        pass
    found = first_match(LABEL_RULES, label)
    if found is None:
        return CategoryBucket.MISC
    return found[1]


class KeywordCategoryClassifier:
    """Deterministic keyword fallback for when the remote model has no answer."""

    def classify(self, text: str) -> CategorizationResult:
        bucket = classify_by_keywords(text)
        return CategorizationResult(mapped=bucket.value, source="keywords")

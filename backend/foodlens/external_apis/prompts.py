"""
Prompt templates for the model adapter and the alternatives pipeline.
Every prompt asks for JSON only; responses still go through the resilient
extractor because models add prose, fences, or get truncated.
"""
from typing import Mapping

# Per-100g reference values for well-known products. Anchors the model's
# numeric estimates; without it the same query drifts between calls.
REFERENCE_PRODUCTS: tuple[Mapping[str, object], ...] = (
    {"name": "KitKat 4 Finger", "brand": "Nestle", "energy_kcal": 518, "fat": 26.0, "saturated_fat": 15.0,
     "carbohydrates": 61.0, "sugars": 48.0, "fiber": 2.1, "protein": 7.3, "salt": 0.24,
     "nutri_score": "E", "nova_group": 4},
    {"name": "Nutella", "brand": "Ferrero", "energy_kcal": 539, "fat": 30.9, "saturated_fat": 10.6,
     "carbohydrates": 57.5, "sugars": 56.3, "fiber": 0.0, "protein": 6.3, "salt": 0.107,
     "nutri_score": "E", "nova_group": 4},
    {"name": "Coca-Cola Original", "brand": "Coca-Cola", "energy_kcal": 42, "fat": 0.0, "saturated_fat": 0.0,
     "carbohydrates": 10.6, "sugars": 10.6, "fiber": 0.0, "protein": 0.0, "salt": 0.0,
     "nutri_score": "E", "nova_group": 4},
    {"name": "Oreo Original", "brand": "Mondelez", "energy_kcal": 480, "fat": 20.0, "saturated_fat": 9.8,
     "carbohydrates": 69.0, "sugars": 38.0, "fiber": 2.8, "protein": 5.0, "salt": 0.73,
     "nutri_score": "E", "nova_group": 4},
    {"name": "Lay's Classic Salted", "brand": "Lay's", "energy_kcal": 536, "fat": 34.0, "saturated_fat": 3.4,
     "carbohydrates": 53.0, "sugars": 0.5, "fiber": 4.4, "protein": 6.4, "salt": 1.3,
     "nutri_score": "D", "nova_group": 4},
    {"name": "Maggi 2-Minute Masala Noodles", "brand": "Nestle", "energy_kcal": 427, "fat": 15.7,
     "saturated_fat": 7.3, "carbohydrates": 60.5, "sugars": 1.4, "fiber": 2.1, "protein": 9.3, "salt": 3.0,
     "nutri_score": "D", "nova_group": 4},
    {"name": "Parle-G Glucose Biscuits", "brand": "Parle", "energy_kcal": 454, "fat": 12.5, "saturated_fat": 6.0,
     "carbohydrates": 77.0, "sugars": 25.0, "fiber": 1.5, "protein": 7.0, "salt": 0.6,
     "nutri_score": "D", "nova_group": 4},
)

PRODUCT_JSON_SHAPE = """{
  "name": "product name",
  "brand": "brand or empty string",
  "categories": "comma separated categories",
  "ingredients_text": "short ingredient summary",
  "nutrition": {
    "energy_kcal": 0, "energy_kj": 0, "fat": 0, "saturated_fat": 0,
    "carbohydrates": 0, "sugars": 0, "fiber": 0, "protein": 0, "salt": 0, "sodium": 0
  },
  "nutri_score": "A|B|C|D|E",
  "eco_score": "A|B|C|D|E or unknown",
  "nova_group": 1,
  "allergens": ["Milk"],
  "labels": ["organic"],
  "serving_size": "",
  "quantity": "",
  "packaging": "",
  "origins": "",
  "confidence": 0.0
}"""


def reference_table() -> str:
    rows = []
    for p in REFERENCE_PRODUCTS:
        rows.append(
            f"- {p['name']} ({p['brand']}): {p['energy_kcal']} kcal, fat {p['fat']}g "
            f"(sat {p['saturated_fat']}g), carbs {p['carbohydrates']}g (sugars {p['sugars']}g), "
            f"fiber {p['fiber']}g, protein {p['protein']}g, salt {p['salt']}g, "
            f"Nutri-Score {p['nutri_score']}, NOVA {p['nova_group']}"
        )
    return "\n".join(rows)


def product_prompt(query: str) -> str:
    return f"""You are a food product database. Identify the packaged food product "{query}".

Return ONLY a JSON object, no markdown, with this shape:
{PRODUCT_JSON_SHAPE}

Rules:
- All nutrition values are per 100g (or 100ml for drinks), numbers only.
- nova_group is 1-4 (1 unprocessed, 4 ultra-processed).
- confidence is 0.0-1.0: how sure you are this is a real product and the values are accurate.
  Use below 0.3 if you do not recognize the product.
- Reference values for well-known products (use these when the query matches):
{reference_table()}"""


def nutrition_fill_prompt(name: str, brand: str = "") -> str:
    product = f"{name} by {brand}" if brand else name
    return f"""The product "{product}" exists in a public food database but its nutrition facts are missing.
Estimate its nutrition per 100g and its grades.

Return ONLY a JSON object, no markdown, with this shape:
{PRODUCT_JSON_SHAPE}

Keep "name" exactly as given. confidence is 0.0-1.0 for the nutrition estimate.
Reference values for well-known products:
{reference_table()}"""


def image_prompt() -> str:
    return f"""Identify the packaged food product in this photo from its label, logo and packaging.

Return ONLY a JSON object, no markdown, with this shape:
{PRODUCT_JSON_SHAPE}

Rules:
- name should be the product name as printed, with the brand in "brand".
- Nutrition values are per 100g estimates for this product.
- confidence is 0.0-1.0 for the identification. If the image is blurry, not a food
  product, or the label is unreadable, set confidence below 0.3.
Reference values for well-known products:
{reference_table()}"""


def target_grades_for(nutri_score: str) -> str:
    """C -> only A or B; D/E (or processing-only trigger) -> A, B or C."""
    if nutri_score == "C":
        return "A or B only"
    return "A, B, or C (never D or E)"


def alternatives_prompt(
    name: str,
    brand: str,
    categories: str,
    nutri_score: str,
    nova_group: int,
    max_items: int = 4,
) -> str:
    target = target_grades_for(nutri_score)
    return f"""Suggest up to {max_items} healthier alternatives to this product:
Product: {name}
Brand: {brand or "unknown"}
Category: {categories or "unknown"}
Nutri-Score: {nutri_score}
NOVA group: {nova_group or "unknown"}

Requirements:
- Same category and use as the original; real products sold in shops.
- Nutri-Score must be {target}.
- Prefer less processed options (lower NOVA group).

Return ONLY a JSON object, no markdown:
{{"alternatives": [
  {{"name": "product name", "brand": "brand", "search_query": "brand and product name for a database search",
    "nutri_score": "A", "nova_group": 1, "reason": "one sentence why it is healthier"}}
]}}"""

"""Prompts for household item detection."""

DETECTION_PROMPT = (
    "You are helping a moving company build an inventory from customer photos. "
    "List every movable household item visible in the image. "
    'Reply with a JSON object of the form {"items": [...]} where each item has '
    '"name", "category", "quantity" and "confidence" (0-1). '
    "Use short English names and one of these categories: furniture, appliance, "
    "electronics, box, decor, kitchen, other."
)

ENHANCED_DETECTION_PROMPT = (
    "You are an inventory surveyor for a household moving service. "
    "Identify every movable item visible in the photo and estimate what a mover "
    "needs to know to price and handle it.\n\n"
    'Reply ONLY with a JSON object of the form {"items": [...]}. '
    "Each item must use these fields (omit a field or use null when unknown):\n"
    '- "id": short stable identifier\n'
    '- "name": concise English item name, e.g. "Three-Seat Sofa"\n'
    '- "category": one of furniture, appliance, electronics, box, decor, '
    "kitchen, other\n"
    '- "subcategory": finer label, e.g. "refrigerator", "wardrobe"\n'
    '- "quantity": integer count of identical items\n'
    '- "confidence": detection confidence between 0 and 1\n'
    '- "bbox_norm": {"x_min", "y_min", "x_max", "y_max"} normalized to 0-1\n'
    '- "dims_cm": {"length", "width", "height"} integers in centimetres\n'
    '- "dims_confidence": 0-1\n'
    '- "dimensions_basis": how dimensions were estimated, e.g. '
    '"reference_object", "typical_size"\n'
    '- "volume_m3": volume in cubic metres\n'
    '- "weight_kg": estimated weight in kilograms\n'
    '- "weight_confidence": 0-1\n'
    '- "weight_basis": how weight was estimated\n'
    '- "fragile", "two_person_lift", "stackable", "disassembly_required": '
    "booleans\n"
    '- "orientation": e.g. "upright", "lying"\n'
    '- "color": dominant color\n'
    '- "material": list of materials, e.g. ["wood", "glass"]\n'
    '- "occluded_fraction": share of the item hidden from view, 0-1\n'
    '- "room_hint": likely room, e.g. "kitchen", "bedroom"\n'
    '- "brand", "model": when visible on the item\n'
    '- "notes": anything a mover should know\n\n'
    "Count identical items with quantity instead of repeating them. "
    "Do not list fixed fixtures such as walls, doors, windows or built-in "
    "cabinets."
)


def detection_prompt(enhanced: bool) -> str:
    """Return the prompt for the configured verbosity."""
    return ENHANCED_DETECTION_PROMPT if enhanced else DETECTION_PROMPT


def max_output_tokens(enhanced: bool) -> int:
    """Return the completion size cap for the configured verbosity."""
    return 4096 if enhanced else 1024

"""
Prompt Builder Service - Generation prompts for the three studio modes

Every prompt opens with a preservation block telling the image model to
keep the jewelry itself unchanged; only the surroundings are restyled.
All modes share BASE_NEGATIVE_PROMPT. Functions are pure: identical input
yields byte-identical output.
"""

from typing import Callable, Dict, Optional

from jewelshot.db.models import GenerationMode
from jewelshot.schemas import BuiltPrompt

DEFAULT_ASPECT_RATIO = "9:16"
DEFAULT_PRESET = "white-background"

BASE_NEGATIVE_PROMPT = (
    "blurry, distorted, deformed, low quality, pixelated, grainy, \n"
    "  watermark, text, logo, signature, amateur, unprofessional,\n"
    "  wrong anatomy, disproportionate, unrealistic, fake-looking,\n"
    "  oversaturated, overexposed, underexposed, bad lighting,\n"
    "  duplicate jewelry, multiple items when single expected,\n"
    "  damaged jewelry, tarnished, dirty, scratched beyond artistic intent"
)


def _is_women(gender: str) -> bool:
    return gender == "women"


def _white_background(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    styling = "elegant feminine styling" if _is_women(gender) else "refined masculine styling"
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Original gemstones, metals, patterns must not change
- Only background becomes pure white (RGB 255, 255, 255)

TASK:
Professional e-commerce product photo of the {jewelry_type} on clean white background.

STYLE: Clean, minimal, professional e-commerce
LIGHTING: Soft even studio lighting, no harsh shadows
COMPOSITION: Centered, {styling}
FOCUS: Product clarity, true colors, sharp details

OUTPUT: High-resolution product photo, Aspect ratio {aspect_ratio}"""


def _still_life(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    composition = "Feminine elegance" if _is_women(gender) else "Masculine refinement"
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Original materials and craftsmanship preserved

TASK:
Artistic still life composition featuring the {jewelry_type} displayed on natural stone surfaces.

ENVIRONMENT: Natural stone display (marble, slate, or granite)
STYLING: Organic elements (dried flowers, crystals, natural textures)
LIGHTING: Soft natural daylight, elegant shadows
MOOD: Sophisticated, organic luxury
COMPOSITION: {composition}

OUTPUT: Editorial still life photo, Aspect ratio {aspect_ratio}"""


def _on_model(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    women = _is_women(gender)
    wearer = "elegant woman" if women else "sophisticated man"
    model = (
        "Professional female model, 25-35 years old"
        if women
        else "Professional male model, 28-40 years old"
    )
    positioning = "graceful hand/body positioning" if women else "confident masculine presence"
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Jewelry is THE FOCUS, not the model

TASK:
Professional lifestyle photo showing {jewelry_type} worn by {wearer}.

MODEL: {model}
STYLING: Timeless, elegant, complementing jewelry without competing
COMPOSITION: Jewelry as primary focus, {positioning}
LIGHTING: Professional studio lighting, flattering and clear
BACKGROUND: Soft neutral tones (cream, taupe, soft grey)

OUTPUT: Professional lifestyle photo, Aspect ratio {aspect_ratio}"""


def _lifestyle(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    styling = (
        "Feminine, elegant, relatable luxury"
        if _is_women(gender)
        else "Masculine, refined, authentic sophistication"
    )
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Natural setting enhances but doesn't overshadow

TASK:
Lifestyle photo of {jewelry_type} in natural, aspirational setting.

ENVIRONMENT: Natural outdoor or elegant indoor setting
MOOD: Aspirational, authentic, emotionally engaging
LIGHTING: Natural soft lighting (golden hour or diffused daylight)
STYLING: {styling}
COMPOSITION: Jewelry integrated naturally into lifestyle moment

OUTPUT: Lifestyle editorial photo, Aspect ratio {aspect_ratio}"""


def _luxury(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    composition = (
        "Haute couture feminine luxury"
        if _is_women(gender)
        else "Distinguished masculine prestige"
    )
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Luxury aesthetic enhances, never alters

TASK:
Ultra-luxury editorial photo of {jewelry_type}, highest-end presentation.

STYLE: Vogue, Harper's Bazaar editorial aesthetic
LIGHTING: Dramatic, sculptural, museum-quality
ENVIRONMENT: Luxurious setting (velvet, silk, marble, gold accents)
MOOD: Exclusive, sophisticated, timeless elegance
COMPOSITION: {composition}

OUTPUT: Luxury editorial photo, Aspect ratio {aspect_ratio}"""


def _close_up(jewelry_type: str, gender: str, aspect_ratio: str) -> str:
    composition = (
        "Delicate feminine details"
        if _is_women(gender)
        else "Bold masculine craftsmanship"
    )
    return f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Macro detail shows authentic craftsmanship

TASK:
Extreme close-up macro photography of {jewelry_type}, showcasing intricate details.

FOCUS: Gemstone facets, metal texture, craftsmanship details
LIGHTING: Precision lighting to reveal depth, sparkle, texture
COMPOSITION: {composition}
DEPTH: Shallow depth of field, artistic bokeh
QUALITY: Ultra-sharp focus on key details

OUTPUT: Macro detail photo, Aspect ratio {aspect_ratio}"""


# Order matters: the first entry is the fallback for unknown ids
PRESETS: Dict[str, Callable[[str, str, str], str]] = {
    "white-background": _white_background,
    "still-life": _still_life,
    "on-model": _on_model,
    "lifestyle": _lifestyle,
    "luxury": _luxury,
    "close-up": _close_up,
}


def build_quick_prompt(
    jewelry_type: str,
    gender: str,
    preset_id: Optional[str] = None,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> BuiltPrompt:
    """Quick mode: a named preset. Unknown ids fall back to white-background."""
    template = PRESETS.get(preset_id or DEFAULT_PRESET, PRESETS[DEFAULT_PRESET])
    return BuiltPrompt(
        prompt=template(jewelry_type, gender, aspect_ratio),
        negative_prompt=BASE_NEGATIVE_PROMPT,
    )


def build_selective_prompt(
    jewelry_type: str,
    gender: str,
    model: Optional[str] = None,
    location: Optional[str] = None,
    mood: Optional[str] = None,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> BuiltPrompt:
    """Selective mode: model style, location and mood picked by the user."""
    prompt = f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical
- Original design is sacred, only context changes

TASK:
Professional photo of {jewelry_type} for {gender}.

MODEL STYLE: {model or 'professional'}
LOCATION: {location or 'studio'}
MOOD: {mood or 'natural'}
COMPOSITION: Balanced, jewelry as focal point
QUALITY: High-end commercial photography

OUTPUT: Professional jewelry photo, Aspect ratio {aspect_ratio}"""

    return BuiltPrompt(prompt=prompt, negative_prompt=BASE_NEGATIVE_PROMPT)


def build_advanced_prompt(
    jewelry_type: str,
    gender: str,
    custom_prompt: Optional[str] = None,
    custom_negative_prompt: Optional[str] = None,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
) -> BuiltPrompt:
    """Advanced mode: free text behind the preservation preamble.

    User negative text is appended to the base negative prompt.
    """
    description = (custom_prompt or "").strip() or "High-quality professional jewelry photography"
    prompt = f"""CRITICAL PRESERVATION RULES:
- EXACT jewelry design must remain 100% identical

TASK:
Professional photo of {jewelry_type} for {gender}.

{description}

OUTPUT: Aspect ratio {aspect_ratio}"""

    negative = BASE_NEGATIVE_PROMPT
    extra = (custom_negative_prompt or "").strip()
    if extra:
        negative = f"{BASE_NEGATIVE_PROMPT}, {extra}"

    return BuiltPrompt(prompt=prompt, negative_prompt=negative)


def build_prompt(
    mode: GenerationMode,
    jewelry_type: str,
    gender: str,
    aspect_ratio: str = DEFAULT_ASPECT_RATIO,
    preset_id: Optional[str] = None,
    model: Optional[str] = None,
    location: Optional[str] = None,
    mood: Optional[str] = None,
    custom_prompt: Optional[str] = None,
    custom_negative_prompt: Optional[str] = None,
) -> BuiltPrompt:
    """Dispatch to the builder for ``mode``."""
    if mode == GenerationMode.SELECTIVE:
        return build_selective_prompt(
            jewelry_type, gender, model=model, location=location, mood=mood,
            aspect_ratio=aspect_ratio,
        )
    if mode == GenerationMode.ADVANCED:
        return build_advanced_prompt(
            jewelry_type, gender, custom_prompt=custom_prompt,
            custom_negative_prompt=custom_negative_prompt, aspect_ratio=aspect_ratio,
        )
    return build_quick_prompt(jewelry_type, gender, preset_id=preset_id, aspect_ratio=aspect_ratio)

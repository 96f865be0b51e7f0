"""Prompt text sent to the image-generation chat."""

from .models import ColorKey


BASE_IMAGE_DESCRIPTIONS = {
    ColorKey.BLUE: "A PLAIN blue PU-leather notebook",
    ColorKey.GREY: "A PLAIN grey PU-leather notebook",
    ColorKey.PINK: "A PLAIN pink PU-leather notebook",
    ColorKey.PURPLE: "A PLAIN purple PU-leather notebook",
}

REFERENCE_IMAGE_DESCRIPTION = "A blue PU notebook with an embossed dog design"

DESIGN_PLACEHOLDER = "[Describe Image B]"

MOCKUP_PROMPT_TEMPLATE = r"""Create the image using the instructions below. Do not use python.

IMAGE A - BASE NOTEBOOK (EDIT THIS IMAGE)
Describe Image A in one sentence:
{image_a}

IMAGE B - DESIGN SOURCE (ARTWORK ONLY)
Describe Image B in one sentence:
{image_b}

IMAGE C - EMBOSSING & LIGHTING REFERENCE (REFERENCE ONLY)
Describe Image C in one sentence:
{image_c}

HOW EACH IMAGE MAY BE USED

IMAGE A (Base Notebook)
This image defines and must retain:
- notebook shape, size, thickness, proportions
- camera angle, perspective, framing
- lighting direction and shadows
- background and props
- surface material and texture (smooth PU leather)

Image A must remain visually identical except for:
- the design that gets translated onto the cover

IMAGE B (Design Source)
Use only:
- the artwork
- the colour palette for the notebook cover

Do NOT copy from Image B:
- lighting
- texture
- background
- composition
- notebook geometry or notebook size or notebook features or stitching or any other effects

IMAGE C (Reference Only)
Image C exists ONLY to teach:
- how strong embossing should look in photography
- how lighting reveals raised texture
- how shadows and highlights prove depth

NEVER copy from Image C:
- any artwork or motif
- any colours
- any layout or composition
- any props or objects

If any design cue from Image C appears in the output, the result is INVALID.

CORE TASK
Edit IMAGE A so that:
- The notebook cover colour matches the colour from IMAGE B
- The artwork from IMAGE B is applied to the notebook cover
- The artwork appears as a REAL, MANUFACTURED, UV-EMBOSSED / TESSELLATED PRINT
- The notebook surface remains smooth everywhere except the embossed design

This is a photorealistic image edit, not a new generation.

NON-NEGOTIABLE EMBOSSING RULES
- This is NOT flat printing.
- You MUST exaggerate embossing depth so it is clearly visible in photos
- Embossing must read as ~4-6mm at normal viewing distance
- Embossing must be obvious without zooming
- If embossing is subtle, the result is WRONG

HEIGHT VARIATION IS REQUIRED
- Primary edges / outer silhouette -> highest relief
- Major internal forms -> medium relief
- Minor details -> shallow relief
- Background leather -> zero relief

The design must appear PRESSED INTO the leather via pressure and UV curing, not painted or stuck on top.

EDGE & SHADOW BEHAVIOUR (PROOF OF EMBOSS)
To prove embossing, you MUST show:
- Clear contact shadows where raised ink meets flat leather
- Shadow falloff on the down-light side of raised edges
- Bright highlight bands on the light-facing edges
- Micro self-shadowing between overlapping raised forms
- Soft, rounded, organically pressed edges (no sharp cutouts)

If there are no visible shadows hugging the artwork edges, embossing is not convincing.

LEATHER INTERACTION (REALISM)
- PU leather grain must continue seamlessly through embossed areas
- Grain compresses slightly near raised edges
- Base leather stays smooth everywhere except the design

No stickers. No decals. No floating layers. No white outlines.

LIGHTING (DO NOT IGNORE)
Use strong raking light similar to Image C:
- Catch raised edges with specular highlights
- Cast visible micro-shadows across the surface
- Increase local contrast around embossed regions
- Make depth obvious even at thumbnail size

Flat lighting = failure.

POSITION & GEOMETRY (LOCKED)
- Keep notebook geometry, camera angle, perspective, and placement identical to Image A
- Do NOT change notebook thickness, edges, spine, ribbons, or page block
- Apply the design in a natural, premium placement on the cover
- Do NOT move, rotate, or resize the design arbitrarily

RENDERING CONSTRAINTS
- Photorealistic product photography (not illustration)
- No painterly textures
- No canvas or paper grain
- No CAD bevels or uniform extrusion

FINAL SELF-VALIDATION (MANDATORY)
Before outputting, ask yourself:
- Does the notebook still look exactly like Image A?
- Is the artwork ONLY from Image B?
- Does the embossing read clearly at normal viewing distance?
- Would a customer believe they could feel this with their fingertips?

If any answer is "no", fix it before outputting.
If not, increase embossing depth, edge highlights, and contact shadows until it passes.

Ensure the output is a high quality 4k resolution image with absolutely no fuzziness or grain."""


def render_prompt(color: ColorKey, design_description: str) -> str:
    """Fill the mockup template for a base colour and design description."""
    return MOCKUP_PROMPT_TEMPLATE.format(
        image_a=BASE_IMAGE_DESCRIPTIONS[ColorKey(color)],
        image_b=design_description.strip() or DESIGN_PLACEHOLDER,
        image_c=REFERENCE_IMAGE_DESCRIPTION,
    )

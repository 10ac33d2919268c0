import numpy as np
from PIL import Image, ImageDraw, ImageFont

from lofterfix.models.geometry import ImageRegion

REGION_COLOR = (255, 56, 56)


def draw_region(image: np.ndarray, region: ImageRegion, confidence: float) -> np.ndarray:
    """
    Draws the repair region and the detector score on a copy of the image.
    """
    img_pil = Image.fromarray(image)
    draw = ImageDraw.Draw(img_pil)

    try:
        font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", 15)
    except IOError:
        font = ImageFont.load_default()

    p1 = (region.x, region.y)
    p2 = (region.x + max(region.width - 1, 0), region.y + max(region.height - 1, 0))
    draw.rectangle([p1, p2], outline=REGION_COLOR, width=2)

    label = f"watermark {confidence:.2f}"
    text_bbox = draw.textbbox((0, 0), label, font=font)
    text_width = text_bbox[2] - text_bbox[0]
    text_height = text_bbox[3] - text_bbox[1]

    # label above the box, or inside it when the box touches the top edge
    top = p1[1] - text_height - 6 if p1[1] >= text_height + 6 else p1[1]
    draw.rectangle([(p1[0], top), (p1[0] + text_width + 4, top + text_height + 6)], fill=REGION_COLOR)
    draw.text((p1[0] + 2, top + 2), label, font=font, fill=(255, 255, 255))

    return np.array(img_pil)

"""
Local material label generator
Uses PIL/Pillow and python-barcode to render Code128 shelf labels
"""
import io
import base64
import logging
from typing import Optional

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger('construcaopro.catalog')


def _load_fonts():
    try:
        return (
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 14),
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 12),
        )
    except (OSError, IOError):
        return ImageFont.load_default(), ImageFont.load_default()


def _draw_centered(draw, text, y, font, width):
    bbox = draw.textbbox((0, 0), text, font=font)
    text_width = bbox[2] - bbox[0]
    draw.text(((width - text_width) // 2, y), text, fill='black', font=font)


def generate_label_image(
    material_nome: str,
    barcode_value: str,
    categoria_nome: Optional[str] = None,
    unidade: Optional[str] = None,
    width: int = 400,
    height: int = 200,
) -> str:
    """
    Render a material label: category on top, Code128 barcode in the middle,
    the encoded value below it and the material name with its unit at the bottom.

    Returns:
        Base64-encoded PNG image as data URL string
    """
    if len(material_nome) > 30:
        material_nome = material_nome[:30] + '...'

    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    font_medium, font_small = _load_fonts()

    margin = 10
    first_line_y = 8
    barcode_y = first_line_y + 18
    barcode_available_height = height - 12 - barcode_y - 20

    _draw_centered(draw, categoria_nome or material_nome, first_line_y, font_medium, width)

    last_line_text = material_nome
    if unidade:
        last_line_text += f" ({unidade})"

    try:
        code128 = barcode.get_barcode_class('code128')
        barcode_img = code128(barcode_value, writer=ImageWriter()).render({
            'write_text': False,
            'module_width': 0.3,
            'module_height': 20.0,
            'quiet_zone': 2.0,
            'background': 'white',
            'foreground': 'black',
        })

        barcode_img_width, barcode_img_height = barcode_img.size
        barcode_width = width - (2 * margin)
        scale_factor = barcode_width / barcode_img_width
        scaled_height = int(barcode_img_height * scale_factor)
        if scaled_height > barcode_available_height:
            scale_factor = barcode_available_height / barcode_img_height
            scaled_height = barcode_available_height
            barcode_width = int(barcode_img_width * scale_factor)

        barcode_img = barcode_img.resize((barcode_width, scaled_height), Image.Resampling.BILINEAR)
        img.paste(barcode_img, ((width - barcode_width) // 2, barcode_y))

        text_y = barcode_y + scaled_height + 5
        _draw_centered(draw, barcode_value, text_y, font_small, width)
        _draw_centered(draw, last_line_text, text_y + 16, font_medium, width)
    except Exception as e:
        # Keep a readable label even when the value cannot be encoded
        logger.error(f"Barcode generation failed for '{barcode_value}': {str(e)}", exc_info=True)
        _draw_centered(draw, f'CÓDIGO: {barcode_value}', barcode_y, font_small, width)
        _draw_centered(draw, last_line_text, barcode_y + 20, font_medium, width)

    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    image_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()

    return f'data:image/png;base64,{image_base64}'


def generate_material_label(material) -> str:
    """Label for a Material, encoding its barcode or, when missing, its internal code"""
    return generate_label_image(
        material_nome=material.nome,
        barcode_value=material.codigo_barras or material.codigo,
        categoria_nome=material.categoria.nome if material.categoria_id else None,
        unidade=material.unidade,
    )

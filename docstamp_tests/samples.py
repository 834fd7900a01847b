from PIL import Image, ImageDraw

__all__ = [
    'DOC_WIDTH', 'DOC_HEIGHT', 'DOC_COLOUR', 'STAMP_COLOUR',
    'document_raster', 'solid_stamp', 'gradient_stamp', 'ringed_stamp',
]

DOC_WIDTH = 800
DOC_HEIGHT = 1000

DOC_COLOUR = (240, 230, 200)
STAMP_COLOUR = (200, 20, 40)


def document_raster(width=DOC_WIDTH, height=DOC_HEIGHT, colour=DOC_COLOUR,
                    mode='RGB'):
    img = Image.new('RGB', (width, height), colour)
    draw = ImageDraw.Draw(img)
    # some ruled lines, so the page isn't uniform
    for y in range(20, height, 40):
        draw.line([(10, y), (width - 10, y)], fill=(60, 60, 60), width=1)
    return img.convert(mode)


def solid_stamp(width=200, height=100, colour=STAMP_COLOUR):
    return Image.new('RGBA', (width, height), colour + (255,))


def gradient_stamp(width=200, height=100):
    img = Image.new('RGBA', (width, height))
    img.putdata([
        ((x * 255) // width, (y * 255) // height, 128, 255)
        for y in range(height) for x in range(width)
    ])
    return img


def ringed_stamp(size=120, colour=STAMP_COLOUR):
    # seal-like stamp: a coloured ring on a transparent background
    img = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse(
        [4, 4, size - 5, size - 5], outline=colour + (255,), width=10
    )
    return img

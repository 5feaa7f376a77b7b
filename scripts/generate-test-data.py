#!/usr/bin/env python3
"""
Generate sample images for Tamperlens testing.

Writes an untouched "photo" plus edited copies into test-data/:
a smoothed patch, a patch from a heavily compressed source, and a
cloned region.
"""
import io
import os

import numpy as np
from PIL import Image, ImageFilter

PATCH = (192, 128, 320, 256)  # left, top, right, bottom


def create_photo(width, height, seed=0):
    """Textured gradient with sensor-like noise, saved through JPEG once."""
    rng = np.random.default_rng(seed)
    ys, xs = np.mgrid[0:height, 0:width]
    base = np.stack([
        255 * xs / width,
        255 * ys / height,
        128 + 60 * np.sin(xs / 17.0) * np.cos(ys / 23.0),
    ], axis=-1)
    noisy = base + rng.normal(0, 6, base.shape)
    img = Image.fromarray(np.clip(noisy, 0, 255).astype(np.uint8))

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=92)
    buf.seek(0)
    return Image.open(buf).convert("RGB")


def save(img, filename):
    img.save(filename, quality=92)
    print(f"Created {filename}")


def create_smoothed(photo, filename):
    """Blur one patch, the way a retouch tool would."""
    edited = photo.copy()
    region = edited.crop(PATCH).filter(ImageFilter.GaussianBlur(3))
    edited.paste(region, PATCH[:2])
    save(edited, filename)


def create_recompressed_patch(photo, filename):
    """Paste a patch that went through a much lower JPEG quality."""
    buf = io.BytesIO()
    photo.crop(PATCH).save(buf, format="JPEG", quality=30)
    buf.seek(0)
    edited = photo.copy()
    edited.paste(Image.open(buf).convert("RGB"), PATCH[:2])
    save(edited, filename)


def create_cloned(photo, filename):
    """Copy one region over another, offset off the 8-pixel grid."""
    edited = photo.copy()
    source = edited.crop((20, 20, 148, 148))
    edited.paste(source, (PATCH[0] + 3, PATCH[1] + 5))
    save(edited, filename)


os.makedirs('test-data/original', exist_ok=True)
os.makedirs('test-data/tampered', exist_ok=True)

print("Generating sample test images...")
print("=" * 50)

photo = create_photo(512, 384)
save(photo, 'test-data/original/sample-photo.jpg')
create_smoothed(photo, 'test-data/tampered/sample-smoothed.jpg')
create_recompressed_patch(photo, 'test-data/tampered/sample-recompressed.jpg')
create_cloned(photo, 'test-data/tampered/sample-cloned.jpg')

print("=" * 50)
print("✓ All sample images created successfully!")
print("\nYou can now:")
print("  1. Analyze the original: tamperlens analyze test-data/original/sample-photo.jpg")
print("  2. Compare with an edit: tamperlens analyze test-data/tampered/sample-smoothed.jpg")
print(f"  Edited region: x={PATCH[0]}..{PATCH[2]}, y={PATCH[1]}..{PATCH[3]}")

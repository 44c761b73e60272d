"""
Image generation collaborator.

The AI model that renders design images lives outside the kernel.  The
kernel only knows this call shape: give it a prompt and a product type, get
back an image URL (``http(s)://`` or a ``data:`` URI).
"""

from typing import Protocol, runtime_checkable

from storefront_kernel.domain.values import ProductCategory


@runtime_checkable
class ImageGenerator(Protocol):
    """Opaque ``(prompt, product_type) -> image_url`` function."""

    def __call__(self, prompt: str, product_type: ProductCategory) -> str:
        ...

"""BRIA Remove Background."""
from models.base import URI_OUTPUT, define_model

bria_remove_bg = define_model({
    "id": "bria-remove-bg",
    "name": "BRIA Remove Background",
    "owner": "bria",
    "model": "remove-background",
    "description": "High-precision background removal that keeps fine detail (256 transparency levels)",
    "category": "image-to-image",
    "estimatedTime": "5-15 s",
    "quality": "high",
    "schema": {
        "required": ["image"],
        "properties": {
            "image": {
                "type": "string",
                "title": "Source Image",
                "description": "Image to remove background from",
                "format": "uri",
                "x-order": 0,
                "x-component": "image-upload",
                "x-grid-column": 1,
                "x-ui-field": "image",
                "x-api-field": "image",
            },
            "preserve_alpha": {
                "type": "boolean",
                "title": "Preserve Alpha Channel",
                "description": "Retain transparency for semi-transparent edges from input image",
                "default": False,
                "x-order": 1,
                "x-component": "toggle",
                "x-grid-column": 2,
                "x-ui-field": "preserveAlpha",
                "x-api-field": "preserve_alpha",
            },
        },
    },
    "output": URI_OUTPUT,
})

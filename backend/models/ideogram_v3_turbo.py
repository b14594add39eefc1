"""Ideogram v3 Turbo: fast text-to-image with inpainting and a character reference."""
from models.base import URI_LIST_OUTPUT, define_model, prompt_param, seed_param

IDEOGRAM_RESOLUTIONS = [
    "1024x1024", "512x1536", "576x1408", "640x1536", "768x1344",
    "832x1216", "896x1152", "1152x896", "1216x832", "1344x768",
    "1408x576", "1536x512", "1536x640",
]

ideogram_v3_turbo = define_model({
    "id": "ideogram-v3-turbo",
    "name": "Ideogram v3 Turbo",
    "owner": "ideogram-ai",
    "model": "ideogram-v3-turbo",
    "description": "Fast generation with strong text rendering, inpainting and an optional character reference",
    "category": "text-to-image",
    "estimatedTime": "10-25 s",
    "quality": "fast",
    "schema": {
        "required": ["prompt"],
        "properties": {
            "prompt": prompt_param(
                "Text prompt for image generation",
                **{"x-component": "textarea", "x-grid-column": 1, "x-ui-field": "prompt", "x-api-field": "prompt"},
            ),
            "aspect_ratio": {
                "type": "string",
                "title": "Aspect Ratio",
                "description": "Image aspect ratio",
                "enum": ["1:1", "16:9", "9:16", "4:3", "3:4", "2:3", "3:2", "16:10", "10:16"],
                "default": "1:1",
                "x-order": 1,
                "x-component": "button-group",
                "x-grid-column": 2,
                "x-ui-field": "aspectRatio",
                "x-api-field": "aspect_ratio",
            },
            "resolution": {
                "type": "string",
                "title": "Resolution",
                "description": "Image resolution in pixels",
                "enum": IDEOGRAM_RESOLUTIONS,
                "default": "1024x1024",
                "x-order": 2,
                "x-component": "select",
                "x-grid-column": 2,
                "x-ui-field": "resolution",
                "x-api-field": "resolution",
            },
            "style_type": {
                "type": "string",
                "title": "Style",
                "description": "Image generation style",
                "enum": ["Auto", "General", "Realistic", "Design"],
                "default": "Auto",
                "x-order": 3,
                "x-component": "button-group",
                "x-grid-column": 2,
                "x-ui-field": "styleType",
                "x-api-field": "style_type",
            },
            "image_file": {
                "type": "string",
                "title": "Character Image",
                "description": "Optional reference image for character consistency",
                "format": "uri",
                "x-order": 4,
                "x-component": "image-upload",
                "x-grid-column": 1,
                "x-ui-field": "characterImage",
                "x-api-field": "image_file",
            },
            "mask": {
                "type": "string",
                "title": "Inpainting Mask",
                "description": "Mask image for inpainting (black areas will be regenerated)",
                "format": "uri",
                "x-order": 5,
                "x-component": "image-upload",
                "x-grid-column": 1,
            },
            "seed": seed_param(6),
        },
    },
    "output": URI_LIST_OUTPUT,
})

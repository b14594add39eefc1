"""Sora 2: text-to-video and image-to-video."""
from models.base import URI_OUTPUT, define_model, prompt_param, seed_param

sora_2 = define_model({
    "id": "sora-2",
    "name": "Sora 2",
    "owner": "openai",
    "model": "sora-2",
    "description": "Text-to-video and image-to-video generation with high realism",
    "category": "image-to-video",
    "estimatedTime": "60-120 s",
    "quality": "high",
    "schema": {
        "required": ["prompt"],
        "properties": {
            "prompt": prompt_param(
                "Text description of the video you want to generate",
                **{"x-component": "textarea", "x-grid-column": 1, "x-ui-field": "prompt", "x-api-field": "prompt"},
            ),
            "input_reference": {
                "type": "string",
                "format": "uri",
                "title": "Input Reference Image",
                "description": "Optional reference image to guide video generation.",
                "x-order": 1,
                "x-component": "image-upload",
                "x-grid-column": 1,
                "x-ui-field": "inputReference",
                "x-api-field": "input_reference",
            },
            "aspect_ratio": {
                "type": "string",
                "title": "Aspect Ratio",
                "description": "Choose the aspect ratio for your video",
                "enum": ["landscape", "portrait", "square"],
                "default": "landscape",
                "x-order": 2,
                "x-component": "button-group",
                "x-grid-column": 2,
                "x-ui-field": "aspectRatio",
                "x-api-field": "aspect_ratio",
            },
            "seed": seed_param(3),
        },
    },
    "output": URI_OUTPUT,
})

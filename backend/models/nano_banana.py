"""Nano Banana: image generation and transformation from several input images."""
from models.base import URI_OUTPUT, define_model, prompt_param

nano_banana = define_model({
    "id": "nano-banana",
    "name": "Nano Banana",
    "owner": "google",
    "model": "nano-banana",
    "description": "Image generation and transformation with multiple input images support",
    "category": "text-to-image",
    "estimatedTime": "10-20 s",
    "quality": "fast",
    "schema": {
        "required": ["prompt"],
        "properties": {
            "prompt": prompt_param("A text description of the image you want to generate"),
            "image_input": {
                "type": "array",
                "items": {"type": "string", "format": "uri"},
                "title": "Image Input",
                "description": "Input images to transform or use as reference (supports multiple images)",
                "default": [],
                "x-order": 1,
                "x-ui-field": "imageInputs",
            },
            "aspect_ratio": {
                "type": "string",
                "title": "Aspect Ratio",
                "description": "Aspect ratio of the generated image",
                "enum": ["match_input_image", "1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"],
                "default": "match_input_image",
                "x-order": 2,
                "x-ui-field": "aspectRatio",
            },
            "output_format": {
                "type": "string",
                "title": "Output Format",
                "description": "Format of the output image",
                "enum": ["jpg", "png"],
                "default": "jpg",
                "x-order": 3,
            },
        },
    },
    "output": URI_OUTPUT,
})

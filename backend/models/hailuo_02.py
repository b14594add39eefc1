"""Hailuo-02: text/image-to-video with first and last frame control."""
from models.base import URI_OUTPUT, define_model, prompt_param

hailuo_02 = define_model({
    "id": "hailuo-02",
    "name": "Hailuo-02",
    "owner": "minimax",
    "model": "hailuo-02",
    "description": "Video generation from a prompt with optional first and last frame images",
    "category": "image-to-video",
    "estimatedTime": "60-180 s",
    "quality": "high",
    "schema": {
        "required": ["prompt"],
        "properties": {
            "prompt": prompt_param(
                "Text description of the video you want to generate",
                **{"x-component": "textarea", "x-grid-column": 1},
            ),
            "first_frame_image": {
                "type": "string",
                "title": "First Frame",
                "description": "Image to use as the first frame of the video",
                "format": "uri",
                "x-order": 1,
                "x-grid-column": 1,
                "x-ui-field": "firstFrameImage",
            },
            "last_frame_image": {
                "type": "string",
                "title": "Last Frame",
                "description": "Image to use as the last frame of the video (requires a first frame)",
                "format": "uri",
                "x-order": 2,
                "x-grid-column": 1,
                "x-ui-field": "lastFrameImage",
            },
            "duration": {
                "type": "integer",
                "title": "Duration",
                "description": "Video duration in seconds",
                "enum": [6, 10],
                "default": 6,
                "x-order": 3,
                "x-grid-column": 2,
            },
            "resolution": {
                "type": "string",
                "title": "Resolution",
                "description": "Output video resolution",
                "enum": ["512p", "768p", "1080p"],
                "default": "1080p",
                "x-order": 4,
                "x-grid-column": 2,
            },
            "prompt_optimizer": {
                "type": "boolean",
                "title": "Prompt Optimizer",
                "description": "Let the model rewrite the prompt for better results",
                "default": True,
                "x-order": 5,
                "x-grid-column": 2,
                "x-ui-field": "promptOptimizer",
            },
        },
    },
    "output": URI_OUTPUT,
})

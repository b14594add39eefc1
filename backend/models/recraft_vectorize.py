"""Recraft Vectorize: raster to SVG."""
from models.base import URI_OUTPUT, define_model

recraft_vectorize = define_model({
    "id": "recraft-vectorize",
    "name": "Recraft Vectorize",
    "owner": "recraft-ai",
    "model": "recraft-vectorize",
    "description": "Converts raster images into clean SVG vector paths for logos, icons and scalable graphics",
    "category": "image-to-image",
    "estimatedTime": "5-15 s",
    "quality": "high",
    "schema": {
        "required": ["image"],
        "properties": {
            "image": {
                "type": "string",
                "title": "Source Image",
                "description": "Image to convert to SVG vector format",
                "format": "uri",
                "x-order": 0,
                "x-component": "image-upload",
                "x-grid-column": 1,
                "x-ui-field": "image",
                "x-api-field": "image",
            },
        },
    },
    "output": URI_OUTPUT,
})

"""FastAPI server exposing the decal studio endpoints for deployment."""

from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from logic.validation import TransformInput, error_payload
from models.design import DesignDescriptor
from models.errors import DecalError
from models.taxonomy import MAX_FONT_SIZE, MIN_FONT_SIZE
from studio_app.app import DecalStudioApp
from studio_app.logging_config import configure_logging

configure_logging()

studio_app = DecalStudioApp()
app = FastAPI(title="Decal Studio", version="0.1.0")


class TextTextureRequest(BaseModel):
    """Request payload for rendering one text decal."""

    text: Dict[str, Any] = Field(..., description="Text style, flat or storefront shaped")
    transform: TransformInput | None = None


class DesignRequest(BaseModel):
    """Request payload carrying a design descriptor in its JSON shape."""

    descriptor: Dict[str, Any] = Field(..., description="DesignDescriptor JSON")


class SaveDesignRequest(DesignRequest):
    user_id: str
    name: str = "Untitled design"


@app.exception_handler(DecalError)
async def decal_error_handler(request: Request, exc: DecalError) -> JSONResponse:
    return JSONResponse(status_code=422, content=error_payload(exc))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=error_payload(exc))


@app.get("/healthz")
async def healthcheck() -> dict:
    """Lightweight readiness probe."""

    return {
        "status": "ok",
        "service": "decal-studio",
        "environment": studio_app.config.environment or "local",
        "canvas_size": studio_app.config.canvas_size,
    }


@app.get("/garments")
async def list_garments() -> dict:
    return {"default": studio_app.anchor_table.default_garment, "garments": studio_app.garments()}


@app.get("/fonts")
async def list_fonts() -> dict:
    return {
        "fonts": studio_app.fonts(),
        "limits": {
            "minSize": MIN_FONT_SIZE,
            "maxSize": MAX_FONT_SIZE,
            "maxLength": studio_app.config.max_text_length,
        },
    }


@app.post("/textures/text")
def render_text_texture(request: TextTextureRequest) -> dict:
    """Validate a text style and return its PNG texture as a data URI."""

    transform = request.transform.model_dump() if request.transform else None
    texture = studio_app.render_text(request.text, transform)
    return {"status": "ok", "texture": texture, "canvasSize": studio_app.config.canvas_size}


@app.post("/designs/resolve")
def resolve_design(request: DesignRequest) -> dict:
    """Return the visible layers, layer flags and render plan for a descriptor."""

    descriptor = studio_app.validate_descriptor(DesignDescriptor.from_dict(request.descriptor))
    return {"status": "ok", **studio_app.resolve(descriptor)}


@app.post("/designs", status_code=201)
def save_design(request: SaveDesignRequest) -> dict:
    descriptor = DesignDescriptor.from_dict(request.descriptor)
    design_id = studio_app.save_design(request.user_id, request.name, descriptor)
    return {"status": "ok", "design_id": design_id}


@app.get("/designs/{design_id}")
def load_design(design_id: str, user_id: str) -> dict:
    """Load a saved design and regenerate its text rasters."""

    decoded = studio_app.load_design(user_id, design_id)
    if decoded is None:
        raise HTTPException(status_code=404, detail="design not found")
    return {
        "status": "ok",
        "design_id": design_id,
        "descriptor": decoded.descriptor.to_dict(include_text_rasters=True),
        "warnings": decoded.warnings,
    }


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:app", host="0.0.0.0", port=int("8080"), reload=False)

"""
FastAPI application for CameraView Service.

Provides HTTP API for negotiating preview/picture resolutions and camera
orientation, both against the attached camera and as stateless calculations.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, HTTPException, Request, Security, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from cameraview_service.aspect_ratio import AspectRatio
from cameraview_service.camera_controller import CameraController
from cameraview_service.capability_source import CapabilitySource, Facing
from cameraview_service.config import CONFIG
from cameraview_service.exceptions import (
    CameraError,
    CameraNotAvailableError,
    InvalidArgumentError,
    NoSupportedConfigurationError,
    UnsupportedAspectRatioError,
)
from cameraview_service.negotiator import negotiate
from cameraview_service.orientation import capture_rotation, display_rotation
from cameraview_service.size import Size
from cameraview_service.size_map import SizeMap

API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=CONFIG.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instance (initialized in lifespan)
camera_controller: CameraController | None = None

# API Key authentication
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Verify API key for authentication.

    Args:
        api_key: API key from X-API-Key header

    Raises:
        HTTPException: If authentication is required and key is invalid
    """
    # If no API key is configured, skip authentication
    if not CONFIG.api_key:
        return

    if api_key is None or api_key != CONFIG.api_key:
        logger.warning("Authentication failed: invalid or missing API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


def create_capability_source() -> CapabilitySource:
    """Build the hardware capability source used on startup."""
    from cameraview_service.picamera_source import Picamera2CapabilitySource

    return Picamera2CapabilitySource()


def get_camera_controller() -> CameraController:
    """
    Dependency injection for camera controller.

    Raises:
        HTTPException: If camera is not initialized
    """
    if camera_controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Camera not initialized",
        )
    return camera_controller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: open the camera on startup, release it on shutdown.
    """
    global camera_controller

    logger.info("=== CameraView Service Starting ===")
    logger.info(
        f"Configuration: facing={CONFIG.facing}, aspect_ratio={CONFIG.aspect_ratio}, "
        f"display_orientation={CONFIG.display_orientation}"
    )
    logger.info(f"API Key Auth: {'Enabled' if CONFIG.api_key else 'Disabled'}")

    try:
        camera_controller = CameraController(create_capability_source())
        camera_controller.start()
        logger.info("=== CameraView Service Started Successfully ===")
    except CameraNotAvailableError as e:
        logger.error(f"Camera not available: {e}")
        raise
    except NoSupportedConfigurationError as e:
        logger.error(f"No usable camera configuration: {e}")
        raise

    yield

    logger.info("=== CameraView Service Shutting Down ===")

    if camera_controller is not None:
        try:
            camera_controller.stop()
        except Exception as e:
            logger.error(f"Error closing camera: {e}")
        camera_controller = None

    logger.info("=== CameraView Service Shutdown Complete ===")


app = FastAPI(
    title="CameraView Service",
    description="API for negotiating camera preview/picture resolutions and orientation",
    version=API_VERSION,
    lifespan=lifespan,
)


# ========== Pydantic Models ==========

class StatusResponse(BaseModel):
    """Base response model with status."""
    status: str = "ok"


class SizeModel(BaseModel):
    """Width/height pair in pixels."""
    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    def to_size(self) -> Size:
        return Size(self.width, self.height)

    @classmethod
    def from_size(cls, size: Size) -> "SizeModel":
        return cls(width=size.width, height=size.height)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    camera_open: bool = Field(..., description="Camera is open")
    version: str = Field(..., description="API version")


class CameraStatusResponse(BaseModel):
    """Controller state and negotiated parameters."""
    state: str = Field(..., description="Controller state")
    facing: str = Field(..., description="Camera facing")
    sensor_orientation: int | None = Field(None, description="Sensor mounting rotation")
    requested_aspect_ratio: str = Field(..., description="Aspect ratio asked for")
    aspect_ratio: str | None = Field(None, description="Effective aspect ratio")
    preview_size: str | None = Field(None, description="Applied preview size")
    picture_size: str | None = Field(None, description="Applied picture size")
    surface_size: str | None = Field(None, description="Measured display surface")
    display_orientation: int = Field(..., description="Screen rotation")
    display_rotation: int | None = Field(None, description="Preview rotation")
    capture_rotation: int | None = Field(None, description="Output image rotation")
    auto_focus: bool = Field(..., description="Continuous autofocus active")
    focus_mode: str | None = Field(None, description="Applied focus mode")
    flash: str = Field(..., description="Flash mode")


class AspectRatiosResponse(BaseModel):
    """Mutually supported aspect ratios."""
    aspect_ratios: list[str] = Field(..., description="Ratios supported by preview and picture")


class AspectRatioRequest(BaseModel):
    """Request model for aspect ratio change."""
    aspect_ratio: str = Field(..., description="Aspect ratio as 'x:y'")


class AspectRatioResponse(StatusResponse):
    """Response model for aspect ratio change."""
    changed: bool = Field(..., description="Whether the ratio changed")
    aspect_ratio: str | None = Field(None, description="Effective aspect ratio")


class DisplayOrientationRequest(BaseModel):
    """Request model for screen rotation."""
    degrees: int = Field(..., description="Screen rotation (0, 90, 180, 270)")


class FacingRequest(BaseModel):
    """Request model for camera facing."""
    facing: Facing = Field(..., description="Camera facing: back, front, external")


class AutoFocusRequest(BaseModel):
    """Request model for autofocus toggle."""
    enabled: bool = Field(..., description="Enable or disable continuous autofocus")


class FlashRequest(BaseModel):
    """Request model for flash mode."""
    mode: str = Field(..., description="Flash mode: off, on, torch, auto, red-eye")


class FlashResponse(StatusResponse):
    """Response model for flash mode."""
    flash: str = Field(..., description="Flash mode in effect")


class NegotiateRequest(BaseModel):
    """Request model for stateless negotiation."""
    aspect_ratio: str = Field("4:3", description="Requested aspect ratio as 'x:y'")
    preview_sizes: list[SizeModel] = Field(..., description="Supported preview sizes")
    picture_sizes: list[SizeModel] = Field(..., description="Supported picture sizes")
    surface: SizeModel | None = Field(None, description="Display surface, omit if not measured")
    display_orientation: int = Field(0, description="Screen rotation (0, 90, 180, 270)")


class NegotiateResponse(BaseModel):
    """Negotiated ratio and sizes."""
    aspect_ratio: str = Field(..., description="Effective aspect ratio")
    preview_size: SizeModel = Field(..., description="Chosen preview size")
    picture_size: SizeModel = Field(..., description="Chosen picture size")


class OrientationRequest(BaseModel):
    """Request model for rotation calculation."""
    facing: Facing = Field(Facing.BACK, description="Camera facing")
    sensor_orientation: int = Field(..., description="Sensor rotation (0, 90, 180, 270)")
    screen_orientation: int = Field(0, description="Screen rotation (0, 90, 180, 270)")


class OrientationResponse(BaseModel):
    """Rotations for preview and output."""
    display_rotation: int = Field(..., description="Preview rotation in degrees")
    capture_rotation: int = Field(..., description="Output image rotation in degrees")


# ========== Exception Handlers ==========

@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    """Handle malformed ratio/size/orientation inputs."""
    logger.warning(f"Invalid argument: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.exception_handler(UnsupportedAspectRatioError)
async def unsupported_ratio_handler(request: Request, exc: UnsupportedAspectRatioError):
    """Handle explicit ratio changes the open camera cannot honor."""
    logger.warning(f"Unsupported aspect ratio: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


@app.exception_handler(NoSupportedConfigurationError)
async def no_configuration_handler(request: Request, exc: NoSupportedConfigurationError):
    """Handle capability sets with no mutual aspect ratio."""
    logger.error(f"No supported configuration: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


@app.exception_handler(CameraNotAvailableError)
async def camera_not_available_handler(request: Request, exc: CameraNotAvailableError):
    """Handle camera not available errors."""
    logger.error(f"Camera not available: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Camera is not available"},
    )


@app.exception_handler(CameraError)
async def camera_error_handler(request: Request, exc: CameraError):
    """Handle general camera errors."""
    logger.error(f"Camera error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Camera operation failed"},
    )


# ========== API Endpoints ==========

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check() -> HealthResponse:
    """
    Health check endpoint for monitoring. Does not require authentication.
    """
    return HealthResponse(
        status="healthy" if camera_controller is not None else "initializing",
        camera_open=camera_controller.is_open() if camera_controller else False,
        version=API_VERSION,
    )


@app.get(
    "/v1/camera/status",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def get_camera_status(
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Get controller state, negotiated sizes and rotations.
    """
    logger.debug("Getting camera status")
    return CameraStatusResponse(**camera.get_status())


@app.get(
    "/v1/camera/aspect_ratios",
    response_model=AspectRatiosResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def get_aspect_ratios(
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> AspectRatiosResponse:
    """
    List the aspect ratios supported by both preview and picture sizes.
    """
    ratios = sorted(camera.supported_aspect_ratios())
    return AspectRatiosResponse(aspect_ratios=[str(ratio) for ratio in ratios])


@app.post(
    "/v1/camera/aspect_ratio",
    response_model=AspectRatioResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_aspect_ratio(
    req: AspectRatioRequest,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> AspectRatioResponse:
    """
    Request a new aspect ratio.

    Returns 409 if the open camera has no preview size with that ratio.
    """
    logger.info(f"Setting aspect ratio: {req.aspect_ratio}")
    changed = camera.set_aspect_ratio(AspectRatio.parse(req.aspect_ratio))
    ratio = camera.aspect_ratio
    return AspectRatioResponse(changed=changed, aspect_ratio=str(ratio) if ratio else None)


@app.post(
    "/v1/camera/surface",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_surface(
    req: SizeModel,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Report the measured display surface and renegotiate the preview size.
    """
    camera.set_surface_size(req.width, req.height)
    return CameraStatusResponse(**camera.get_status())


@app.delete(
    "/v1/camera/surface",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def clear_surface(
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Forget the display surface; the smallest preview size is used until it is reported again.
    """
    camera.clear_surface()
    return CameraStatusResponse(**camera.get_status())


@app.post(
    "/v1/camera/display_orientation",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_display_orientation(
    req: DisplayOrientationRequest,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Update the screen rotation.
    """
    camera.set_display_orientation(req.degrees)
    return CameraStatusResponse(**camera.get_status())


@app.post(
    "/v1/camera/facing",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_facing(
    req: FacingRequest,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Switch to the camera with the given facing, reopening it if needed.
    """
    camera.set_facing(req.facing)
    return CameraStatusResponse(**camera.get_status())


@app.post(
    "/v1/camera/autofocus",
    response_model=CameraStatusResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_autofocus(
    req: AutoFocusRequest,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> CameraStatusResponse:
    """
    Enable or disable continuous autofocus.
    """
    camera.set_auto_focus(req.enabled)
    return CameraStatusResponse(**camera.get_status())


@app.post(
    "/v1/camera/flash",
    response_model=FlashResponse,
    tags=["Camera"],
    dependencies=[Depends(verify_api_key)],
)
def set_flash(
    req: FlashRequest,
    camera: Annotated[CameraController, Depends(get_camera_controller)],
) -> FlashResponse:
    """
    Request a flash mode; unsupported modes fall back to the current mode or off.
    """
    return FlashResponse(flash=camera.set_flash(req.mode))


@app.post(
    "/v1/negotiate",
    response_model=NegotiateResponse,
    tags=["Negotiation"],
    dependencies=[Depends(verify_api_key)],
)
def negotiate_sizes(req: NegotiateRequest) -> NegotiateResponse:
    """
    Negotiate a ratio and preview/picture sizes from posted capability lists.

    Does not touch the attached camera.
    """
    preview_sizes = SizeMap()
    for size in req.preview_sizes:
        preview_sizes.add(size.to_size())
    picture_sizes = SizeMap()
    for size in req.picture_sizes:
        picture_sizes.add(size.to_size())

    result = negotiate(
        AspectRatio.parse(req.aspect_ratio),
        preview_sizes,
        picture_sizes,
        surface=req.surface.to_size() if req.surface else None,
        display_orientation=req.display_orientation,
    )
    return NegotiateResponse(
        aspect_ratio=str(result.ratio),
        preview_size=SizeModel.from_size(result.preview_size),
        picture_size=SizeModel.from_size(result.picture_size),
    )


@app.post(
    "/v1/orientation",
    response_model=OrientationResponse,
    tags=["Negotiation"],
    dependencies=[Depends(verify_api_key)],
)
def calculate_orientation(req: OrientationRequest) -> OrientationResponse:
    """
    Compute preview and output rotations for a camera/screen combination.
    """
    is_front = req.facing.is_front
    return OrientationResponse(
        display_rotation=display_rotation(is_front, req.sensor_orientation, req.screen_orientation),
        capture_rotation=capture_rotation(is_front, req.sensor_orientation, req.screen_orientation),
    )

"""Video-space <-> presentation-space mapping under contain-fit scaling."""

from frameslicer.models import MediaDimensions, Point, PresentationGeometry, Rect


class CoordinateMapper:
    """Affine transform between the source video and its display surface.

    The video is scaled to fit entirely inside the container while keeping its
    aspect ratio, and centered along the axis with spare room (letterbox or
    pillarbox).
    """

    def __init__(self, media: MediaDimensions, container_width: float, container_height: float):
        if container_width <= 0 or container_height <= 0:
            raise ValueError(
                f"Container size must be positive, got {container_width}x{container_height}"
            )
        self.media = media
        self.container_width = container_width
        self.container_height = container_height
        self.geometry = self.compute_presentation_geometry()

    def compute_presentation_geometry(self) -> PresentationGeometry:
        cw, ch = self.container_width, self.container_height
        video_ratio = self.media.width / self.media.height
        container_ratio = cw / ch

        if video_ratio > container_ratio:
            display_w = cw
            display_h = cw / video_ratio
            return PresentationGeometry(display_w, display_h, 0.0, (ch - display_h) / 2)

        display_h = ch
        display_w = ch * video_ratio
        return PresentationGeometry(display_w, display_h, (cw - display_w) / 2, 0.0)

    @property
    def scale_x(self) -> float:
        return self.geometry.display_w / self.media.width

    @property
    def scale_y(self) -> float:
        return self.geometry.display_h / self.media.height

    def to_presentation(self, p: Point) -> Point:
        g = self.geometry
        return Point(p.x * self.scale_x + g.offset_x, p.y * self.scale_y + g.offset_y)

    def to_video(self, p: Point) -> Point:
        g = self.geometry
        return Point((p.x - g.offset_x) / self.scale_x, (p.y - g.offset_y) / self.scale_y)

    def rect_to_presentation(self, rect: Rect) -> Rect:
        top_left = self.to_presentation(Point(rect.x, rect.y))
        bottom_right = self.to_presentation(Point(rect.right, rect.bottom))
        return Rect(
            x=top_left.x,
            y=top_left.y,
            w=bottom_right.x - top_left.x,
            h=bottom_right.y - top_left.y,
        )

    def resized(self, container_width: float, container_height: float) -> "CoordinateMapper":
        return CoordinateMapper(self.media, container_width, container_height)

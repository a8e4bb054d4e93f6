"""
Frame source factory.
"""

from dosewise.frame_source.FrameSource import FrameSource
from dosewise.frame_source.OpenCvFrameSource import OpenCVFrameSource


class FrameSourceFactory:
    """
    Factory for creating frame sources based on type.
    """

    @staticmethod
    def create(source_type: str, **kwargs) -> FrameSource:
        """
        Create a frame source.

        Args:
            source_type: 'opencv'

        Kwargs for OpenCV:
            source: Camera index, file path or RTSP URL
            frame_size: (width, height) of the detection canvas
            target_fps: Read pacing

        Returns:
            FrameSource instance

        Raises:
            CameraAccessError: If the camera cannot be opened
            ValueError: Unknown source type
        """
        if source_type.lower() == 'opencv':
            return OpenCVFrameSource(
                kwargs.get('source', 0),
                frame_size=kwargs.get('frame_size', (640, 480)),
                target_fps=kwargs.get('target_fps'),
            )

        raise ValueError(f"Unknown source_type: {source_type}")

from ragloader.providers.media.ffmpeg_converter import FFmpegMediaConverter

__all__ = ["FFmpegMediaConverter"]

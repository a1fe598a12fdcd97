from .sampler import FrameSampler, VideoMetadata

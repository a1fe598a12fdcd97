from .errors import (
    ClassifierError,
    ClassifierUnavailable,
    CorruptMedia,
    MalformedClassifierOutput,
    NoFramesExtracted,
    JobAbandoned,
    PersistenceFailure,
    PipelineError,
)
from .pipeline import CHECKPOINTS, JobRecord, VideoPipeline
from .sampler import FrameSampler, VideoMetadata
from .safety import AggregationPolicy, GeminiSafetyClassifier, Verdict, VerdictAggregator

from .aggregator import AggregationPolicy, Disposition, SafetySummary, VerdictAggregator
from .classifier import FrameResult, GeminiSafetyClassifier, Verdict, parse_verdict
from .prompts import PROMPTS, get_prompt

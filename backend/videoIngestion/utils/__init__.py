from .fs_utils import ensure_dir, remove_work_dir, verify_file_written
from .probe_utils import parse_ratio, quality_label, to_float, to_int

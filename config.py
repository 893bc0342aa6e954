# config.py
# Tunable constants for the partition simulator. Adjust to experiment with
# different memory layouts and workloads.

# MEMORY LAYOUT #
DEFAULT_TOTAL_SIZE = 1000
DEFAULT_POLICY = "First-Fit"
PARTITION_COUNT_OPTIONS = [5, 10, 15, 20]
RANDOM_BLOCK_MIN = 50
RANDOM_BLOCK_MAX = 200

# WORKLOAD #
REQUEST_MIN = 1
REQUEST_MAX = 200
FILL_MAX_STEPS = 500
ALLOCATE_DELAY = 0.05  # seconds between auto-allocation steps
COMPACT_DELAY = 0.1

# DISPLAY #
LOG_TAIL = 20

"""Central configuration constants for mangrove_lulc.

Default values for every recognized pipeline option live here so the
configuration layer, the CLI and the pipeline stages agree on them.
"""

# Sampling
DEFAULT_TRAIN_FRACTION = 0.7  # Share of each class's polygons used for training
DEFAULT_SAMPLE_SIZE_PER_CLASS = 500  # Training pixels drawn per class
DEFAULT_SEED = 1234  # Seed for polygon split, pixel subsample and tree bootstrap

# Classifier
DEFAULT_TREE_COUNT = 100  # Trees in the random-forest ensemble
DEFAULT_REGULARIZATION = 0.0  # Ridge added to class covariances (0 = fail on singular)
SINGULAR_TOLERANCE = 1e-10  # Smallest/largest covariance eigenvalue ratio treated as singular

# Raster Processing
DEFAULT_BLOCK_ROWS = 256  # Rows predicted per block
NODATA_CLASS = 0  # Output code for cells that cannot be classified

# Vector attributes
DEFAULT_ID_FIELD = "id"
DEFAULT_CLASS_FIELD = "classId"

# Band name -> wavelength (nm), diagnostic only
DEFAULT_BANDS = (
    ("G", 560.0),
    ("B", 490.0),
    ("R", 665.0),
    ("NIR", 842.0),
)

"""Command-line interface for the co-purchase recommendation pipeline.

Loads the dataset, trains and evaluates the model, and prints the score of
a sample product pair and the top products for a sample product.

Example:
    Reproduce the reference run:
        $ python scripts/run_pipeline.py

    Seeded run that keeps the model for the API:
        $ python scripts/run_pipeline.py data/fake_pairs.tsv \\
            --seed 42 \\
            --model-dir models \\
            --no-pause
"""

import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from productrec.recommender.pipeline import main

if __name__ == "__main__":
    sys.exit(main())

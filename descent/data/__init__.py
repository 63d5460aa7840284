"""Data sets and loaders."""

from .dataset import Batch, Dataset
from .loaders import load_csv_dataset, write_csv_dataset

"""Convert a source CSV into the parquet snapshot Crossview can load (DATA_PATH)."""

import os
import sys

import pandas as pd


def csv_to_parquet(filename: str, data_dir: str = "data") -> str:
    csv_path = os.path.join(data_dir, filename)
    if not os.path.isfile(csv_path):
        raise FileNotFoundError(csv_path)
    if not filename.lower().endswith(".csv"):
        raise ValueError(f"not a .csv file: {filename}")

    df = pd.read_csv(csv_path)

    base_name = os.path.splitext(filename)[0]
    parquet_path = os.path.join(data_dir, base_name + ".parquet")
    df.to_parquet(parquet_path, index=False)
    return parquet_path


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python csv_to_parquet.py <filename.csv> [data_dir]")
        sys.exit(1)
    try:
        out = csv_to_parquet(*sys.argv[1:3])
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    print(f"Converted {sys.argv[1]} -> {out}")

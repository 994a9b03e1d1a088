"""Bundled cross datasets.

A bundle is the zip written by ``Qtl2Exporter.bundle``: a JSON manifest and
the four tables it names. Bundles shipped with the package live in
``magic_cross/data`` and are loaded by name.
"""

from __future__ import annotations

import json
import shutil
import zipfile
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import pandas as pd

from magic_cross.utils.logging import get_logger
from magic_cross.utils.validators import ValidationError, validate_file_exists

logger = get_logger(__name__)

DEFAULT_DATASET = "kover2009"


@dataclass
class Cross:
    """An in-memory cross dataset."""

    manifest: dict[str, Any]
    geno: pd.DataFrame
    founder_geno: pd.DataFrame
    gmap: pd.DataFrame
    pmap: pd.DataFrame
    source: Path | None = field(default=None)

    @property
    def founders(self) -> list[str]:
        return list(self.manifest.get("alleles", []))

    @property
    def markers(self) -> list[str]:
        return list(self.geno.columns)

    def summary(self) -> dict[str, int | str]:
        """Key figures for display."""
        return {
            "Description": self.manifest.get("description", ""),
            "Cross type": self.manifest.get("crosstype", ""),
            "Lines": self.geno.shape[0],
            "Founders": self.founder_geno.shape[0],
            "Markers": self.geno.shape[1],
            "Chromosomes": self.pmap["chr"].nunique(),
            "Missing genotypes": int(self.geno.isna().sum().sum()),
        }


def data_dir() -> Path:
    """Directory holding the bundled datasets."""
    return Path(str(resources.files("magic_cross") / "data"))


def list_datasets() -> list[str]:
    """Names of the bundled datasets."""
    directory = data_dir()
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.zip"))


def install_bundle(zip_path: str | Path, name: str | None = None) -> Path:
    """
    Copy a bundle into the package data directory.

    Args:
        zip_path: Bundle written by the exporter.
        name: Dataset name. Defaults to the bundle's file stem.

    Returns:
        Path of the installed bundle.
    """
    zip_path = Path(zip_path)
    validate_file_exists(zip_path, "Cross bundle")
    target = data_dir() / f"{name or zip_path.stem}.zip"
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(zip_path, target)
    logger.info(f"Installed {zip_path.name} as dataset {target.stem}")
    return target


def load_cross(name: str = DEFAULT_DATASET, path: str | Path | None = None) -> Cross:
    """
    Load a cross dataset bundle.

    Args:
        name: Name of a bundled dataset.
        path: Explicit bundle path, overriding name.

    Returns:
        The loaded Cross.

    Raises:
        FileNotFoundError: If no such bundle exists.
        ValidationError: If the bundle lacks a manifest or a named table.
    """
    if path is None:
        path = data_dir() / f"{name}.zip"
        if not path.exists():
            available = ", ".join(list_datasets()) or "none"
            raise FileNotFoundError(f"No bundled dataset {name!r} (available: {available})")
    path = Path(path)
    validate_file_exists(path, "Cross bundle")

    with zipfile.ZipFile(path) as zf:
        members = set(zf.namelist())
        manifests = [m for m in members if m.endswith(".json")]
        if len(manifests) != 1:
            raise ValidationError(f"Expected one JSON manifest in {path.name}, found {len(manifests)}")

        with zf.open(manifests[0]) as f:
            manifest = json.load(f)

        def read(role: str, index: bool) -> pd.DataFrame:
            member = manifest.get(role)
            if member not in members:
                raise ValidationError(f"{path.name} does not contain the {role} table {member!r}")
            with zf.open(member) as f:
                table = pd.read_csv(
                    f,
                    sep=manifest.get("sep", ","),
                    comment=manifest.get("comment.char", "#"),
                    na_values=manifest.get("na.strings", ["NA"]),
                    keep_default_na=False,
                    index_col=0 if index else None,
                )
            if index:
                table.index = table.index.astype(str)
            return table

        geno = read("geno", index=True).astype("Int64")
        founder_geno = read("founder_geno", index=True).astype("Int64")
        gmap = read("gmap", index=False)
        pmap = read("pmap", index=False)

    logger.info(f"Loaded cross dataset from {path}: {geno.shape[0]} lines x {geno.shape[1]} markers")
    return Cross(
        manifest=manifest,
        geno=geno,
        founder_geno=founder_geno,
        gmap=gmap,
        pmap=pmap,
        source=path,
    )

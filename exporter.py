"""
Result export to JSON, CSV or Excel
"""

import json
from pathlib import Path
from typing import List, Union

import pandas as pd
from loguru import logger

from models import SearchResponse


COLUMNS = ["query", "position", "title", "link", "snippet"]


def responses_to_dataframe(responses: List[SearchResponse]) -> pd.DataFrame:
    """Flatten responses into one row per result"""
    rows = []
    for response in responses:
        for position, result in enumerate(response.results, 1):
            rows.append({
                "query": response.query,
                "position": position,
                "title": result.title,
                "link": result.link,
                "snippet": result.snippet,
            })
    return pd.DataFrame(rows, columns=COLUMNS)


def export_responses(responses: List[SearchResponse], output_path: Union[str, Path]) -> Path:
    """
    Write responses to a file, format chosen by extension

    .json keeps the response structure; .csv and .xlsx are flattened to rows.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lower()

    if suffix == ".json":
        payload = [r.model_dump() for r in responses]
        output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    elif suffix == ".csv":
        responses_to_dataframe(responses).to_csv(output_path, index=False)
    elif suffix == ".xlsx":
        responses_to_dataframe(responses).to_excel(output_path, index=False, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported export format: {output_path.suffix or '(none)'}")

    logger.info(f"💾 Saved {sum(len(r.results) for r in responses)} results to: {output_path}")
    return output_path

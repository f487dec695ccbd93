"""
Self-contained HTML report: headings, prose, tables and embedded figures.
"""

import base64
import html
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)

STYLE = """
body { font-family: Helvetica, Arial, sans-serif; max-width: 980px; margin: 2em auto; color: #222; line-height: 1.5; }
h1 { border-bottom: 2px solid #444; padding-bottom: .3em; }
h2 { margin-top: 2em; border-bottom: 1px solid #ccc; }
table.dataframe { border-collapse: collapse; margin: 1em 0; font-size: .9em; }
table.dataframe th, table.dataframe td { border: 1px solid #ccc; padding: 4px 8px; text-align: right; }
table.dataframe th { background: #f3f3f3; }
figure { margin: 1.5em 0; }
figcaption { font-size: .9em; color: #555; }
.meta { color: #777; font-size: .85em; }
"""


class HTMLReport:
    """Accumulates report blocks in order and renders them as one HTML document."""

    def __init__(self, title: str, float_format: str = "{:.3f}"):
        self.title = title
        self.float_format = float_format
        self.blocks: List[str] = []

    def add_heading(self, text: str, level: int = 2):
        if not 1 <= level <= 6:
            raise ValueError(f"Heading level must be 1-6, got {level}")
        self.blocks.append(f"<h{level}>{html.escape(text)}</h{level}>")

    def add_paragraph(self, text: str):
        self.blocks.append(f"<p>{html.escape(text)}</p>")

    def add_list(self, items: List[str]):
        entries = "".join(f"<li>{html.escape(item)}</li>" for item in items)
        self.blocks.append(f"<ul>{entries}</ul>")

    def add_table(self, df: pd.DataFrame, caption: Optional[str] = None, index: bool = True):
        formatter = self.float_format.format
        table = df.to_html(index=index, float_format=formatter, border=0, escape=True)
        if caption:
            self.blocks.append(f"<p><strong>{html.escape(caption)}</strong></p>")
        self.blocks.append(table)

    def add_preformatted(self, text: str):
        self.blocks.append(f"<pre>{html.escape(text)}</pre>")

    def add_figure(self, fig: Figure, caption: Optional[str] = None, dpi: int = 110):
        """Embed a figure as a base64 PNG and close it."""
        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
        plt.close(fig)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        caption_html = f"<figcaption>{html.escape(caption)}</figcaption>" if caption else ""
        self.blocks.append(
            f'<figure><img src="data:image/png;base64,{encoded}" alt="{html.escape(caption or "figure")}"/>'
            f"{caption_html}</figure>"
        )

    def render(self) -> str:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        body = "\n".join(self.blocks)
        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n<head>\n<meta charset="utf-8"/>\n'
            f"<title>{html.escape(self.title)}</title>\n<style>{STYLE}</style>\n</head>\n<body>\n"
            f"<h1>{html.escape(self.title)}</h1>\n"
            f'<p class="meta">Generated {generated}</p>\n'
            f"{body}\n</body>\n</html>\n"
        )

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        logger.info(f"Report written to {path}")
        return path

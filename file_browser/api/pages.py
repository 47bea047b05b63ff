from __future__ import annotations

from datetime import datetime
from html import escape
from urllib.parse import urlencode

from file_browser.services.file_catalog import FileEntry, ListingResult, SortKey, SortOrder

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
DASH = "—"


def human_size(size: int, is_dir: bool = False) -> str:
    """Format bytes with base-1024 units, e.g. ``1.50 KB``; directories get a dash."""

    if is_dir:
        return DASH
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {SIZE_UNITS[unit]}"


def format_mtime(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def listing_href(path: str, query: str = "", sort: str = "", order: str = "") -> str:
    params = {"path": path}
    if query:
        params["q"] = query
    if sort:
        params["sort"] = sort
    if order:
        params["order"] = order
    return "/?" + urlencode(params)


def download_href(path: str) -> str:
    return "/download?" + urlencode({"path": path})


def _sort_header(result: ListingResult, key: SortKey, label: str) -> str:
    order = SortOrder.ASC
    marker = ""
    if result.sort is key:
        marker = " &uarr;" if result.order is SortOrder.ASC else " &darr;"
        if result.order is SortOrder.ASC:
            order = SortOrder.DESC
    href = listing_href(result.path, result.query, key.value, order.value)
    return f"<th><a href='{escape(href)}'>{label}{marker}</a></th>"


def _row(entry: FileEntry) -> str:
    if entry.is_dir:
        href = listing_href(entry.relative_path)
        display_name = f"{entry.name}/"
    else:
        href = download_href(entry.relative_path)
        display_name = entry.name
    return (
        f"<tr><td><a href='{escape(href)}'>{escape(display_name)}</a></td>"
        f"<td>{human_size(entry.size, entry.is_dir)}</td>"
        f"<td>{format_mtime(entry.modified_at)}</td></tr>"
    )


def render_listing(result: ListingResult) -> str:
    rows_html = "".join(_row(entry) for entry in result.entries)
    if not rows_html:
        empty = "No entries match the filter." if result.query else "Directory is empty."
        rows_html = f"<tr><td colspan='3'>{empty}</td></tr>"

    crumbs = ["<a href='/'>Home</a>"]
    crumbs.extend(
        f"<a href='{escape(listing_href(crumb.navigation_path))}'>{escape(crumb.label)}</a>"
        for crumb in result.breadcrumbs
    )
    breadcrumbs_html = " / ".join(crumbs)

    parent_link_html = ""
    if result.parent_path is not None:
        parent_href = listing_href(result.parent_path) if result.parent_path else "/"
        parent_link_html = f"<a href='{escape(parent_href)}'>&larr; Up one level</a>"

    headers_html = "".join(
        (
            _sort_header(result, SortKey.NAME, "Name"),
            _sort_header(result, SortKey.SIZE, "Size"),
            _sort_header(result, SortKey.MODIFIED, "Modified"),
        )
    )

    return f"""
        <!DOCTYPE html>
        <html lang='en'>
        <head>
            <meta charset='utf-8'>
            <title>File Browser</title>
            <link rel='stylesheet' href='/static/style.css'>
        </head>
        <body>
            <div class='top-bar'>
                <h1>File Browser</h1>
                <div>{parent_link_html}</div>
            </div>
            <div class='crumbs'>{breadcrumbs_html}</div>
            <form class='search' method='get' action='/'>
                <input type='hidden' name='path' value='{escape(result.path)}'>
                <input type='hidden' name='sort' value='{result.sort.value}'>
                <input type='hidden' name='order' value='{result.order.value}'>
                <input type='search' name='q' value='{escape(result.query)}' placeholder='Filter by name'>
                <button type='submit'>Search</button>
            </form>
            <table>
                <thead>
                    <tr>{headers_html}</tr>
                </thead>
                <tbody>
                    {rows_html}
                </tbody>
            </table>
        </body>
        </html>
        """

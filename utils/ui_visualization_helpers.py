# ohms/utils/ui_visualization_helpers.py
# Shared presentation helpers for the OHMS Streamlit pages:
#   1. Plotly theme and color lookup used by every chart.
#   2. HTML components (KPI cards, status badges, detail fields) styled by assets/style_web.css.
#   3. Layout widgets reused by all list pages: split panes, panel width slider,
#      search bar and pagination controls.
#   4. Plotly chart builders (line, bar, donut).

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd
import logging
import plotly.io as pio
from config import app_config
import html
import os
from typing import Optional, List, Dict, Any, Tuple

from utils.route_state import clamp_panel_width, default_panel_width, get_route_state, set_route_state

logger = logging.getLogger(__name__)

# --- I. Core Theming and Color Utilities ---

def _get_theme_color(index: Any = 0, fallback_color: str = app_config.COLOR_ACTION_PRIMARY, color_type: str = "general") -> str:
    """
    Safely retrieves a color from the app palette or Plotly's active colorway.
    Named types (status_*, action_*, info) map straight to app_config; anything else
    indexes into the colorway, with a fallback if that fails.
    """
    try:
        named_colors = {
            "status_high": app_config.COLOR_RISK_HIGH,
            "status_moderate": app_config.COLOR_RISK_MODERATE,
            "status_low": app_config.COLOR_RISK_LOW,
            "status_neutral": app_config.COLOR_RISK_NEUTRAL,
            "action_primary": app_config.COLOR_ACTION_PRIMARY,
            "action_secondary": app_config.COLOR_ACTION_SECONDARY,
            "info": app_config.COLOR_INFO,
        }
        if color_type in named_colors:
            return named_colors[color_type]

        active_template_name = pio.templates.default
        colorway_to_use = px.colors.qualitative.Plotly

        if active_template_name and "ohms_web_theme" in str(active_template_name):
            theme_layout = pio.templates["ohms_web_theme"].layout
            if theme_layout.colorway:
                colorway_to_use = theme_layout.colorway

        if colorway_to_use:
            # Use hash for string indices to get a consistent color per category
            num_idx_for_color = index if isinstance(index, int) else abs(hash(str(index)))
            return colorway_to_use[num_idx_for_color % len(colorway_to_use)]

    except Exception as e_get_color:
        logger.warning(f"Could not retrieve theme color for index/key '{index}', type '{color_type}': {e_get_color}. Using fallback: {fallback_color}")
    return fallback_color


def set_ohms_plotly_theme_web():
    """Registers the 'ohms_web_theme' Plotly template and makes it the default."""
    theme_font_family_web = '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif'
    theme_text_color_web = "#37474F"
    theme_grid_color_web = "#E0E0E0"
    theme_border_color_web = "#BDBDBD"

    ohms_colorway_list = [
        app_config.COLOR_ACTION_PRIMARY,
        app_config.COLOR_RISK_LOW,
        app_config.COLOR_WARNING_ORANGE,
        app_config.COLOR_RISK_HIGH,
        "#00ACC1", # Teal
        "#5E35B1", # Deep Purple
    ]
    ohms_colorway_list.extend(px.colors.qualitative.Bold[len(ohms_colorway_list):])

    layout_settings_web = {
        'font': dict(family=theme_font_family_web, size=11, color=theme_text_color_web),
        'paper_bgcolor': "#FFFFFF",
        'plot_bgcolor': "#FAFAFA",
        'colorway': ohms_colorway_list,
        'xaxis': dict(gridcolor=theme_grid_color_web, linecolor=theme_border_color_web, zerolinecolor=theme_grid_color_web, title_font_size=12, tickfont_size=10, automargin=True),
        'yaxis': dict(gridcolor=theme_grid_color_web, linecolor=theme_border_color_web, zerolinecolor=theme_grid_color_web, title_font_size=12, tickfont_size=10, automargin=True),
        'title': dict(
            font=dict(family=theme_font_family_web, size=15, color=app_config.COLOR_ACTION_SECONDARY),
            x=0.02, xanchor='left', y=0.96, yanchor='top'
        ),
        'legend': dict(bgcolor='rgba(255,255,255,0.9)', bordercolor=theme_border_color_web, borderwidth=0.5, orientation='h', yanchor='bottom', y=1.01, xanchor='right', x=1, font_size=10),
        'margin': dict(l=50, r=20, t=60, b=40)
    }

    pio.templates["ohms_web_theme"] = go.layout.Template(layout=go.Layout(**layout_settings_web))
    pio.templates.default = "plotly+ohms_web_theme"
    logger.info("Plotly theme 'ohms_web_theme' set as default.")

# Apply the theme when this module is imported.
set_ohms_plotly_theme_web()


# --- II. HTML-Based UI Components ---
# These use the CSS defined in assets/style_web.css (app_config.STYLE_CSS_PATH_WEB)

@st.cache_resource
def _read_css_file(css_file_path: str) -> str:
    if not os.path.exists(css_file_path):
        logger.warning(f"Web CSS file not found: {css_file_path}. Default Streamlit styles will apply.")
        return ""
    try:
        with open(css_file_path, encoding="utf-8") as f:
            css_text = f.read()
        logger.info(f"Web CSS loaded successfully from {css_file_path}")
        return css_text
    except OSError as e_css:
        logger.error(f"Error reading web CSS file {css_file_path}: {e_css}")
        return ""

def load_web_css(css_file_path: str = app_config.STYLE_CSS_PATH_WEB):
    """Injects the stylesheet into the current page (file contents are read once per process)."""
    css_text = _read_css_file(css_file_path)
    if css_text:
        st.markdown(f'<style>{css_text}</style>', unsafe_allow_html=True)

def render_web_kpi_card(title: str, value: str, icon: str = "●", status_level: str = "neutral",
                        delta: Optional[str] = None, delta_is_positive: Optional[bool] = None,
                        help_text: Optional[str] = None, units: Optional[str] = ""):
    """
    Renders a KPI card using HTML/CSS.
    Status maps to the card accent color. Delta positive maps to green, negative to red.
    """
    status_class_map = {
        "high": "status-high", "critical": "status-high",
        "moderate": "status-moderate", "warning": "status-moderate",
        "low": "status-low", "good": "status-low",
        "info": "status-info",
        "neutral": "status-neutral", "default": "status-neutral"
    }
    css_status_class = status_class_map.get(str(status_level).lower(), "status-neutral")

    delta_html_content = ""
    if delta is not None and str(delta).strip():
        delta_class = ""
        if delta_is_positive is True: delta_class = "positive"
        elif delta_is_positive is False: delta_class = "negative"
        delta_html_content = f'<p class="kpi-delta {delta_class}">{html.escape(str(delta))}</p>'

    tooltip_attr = f'title="{html.escape(str(help_text))}"' if help_text and str(help_text).strip() else ''
    value_units_html = f"{html.escape(str(value))}<span class='kpi-units'>{html.escape(str(units))}</span>" if units else html.escape(str(value))

    html_render_content = f"""
    <div class="kpi-card {css_status_class}" {tooltip_attr}>
        <div class="kpi-card-header">
            <div class="kpi-icon">{html.escape(str(icon))}</div>
            <h3 class="kpi-title">{html.escape(str(title))}</h3>
        </div>
        <div class="kpi-body">
            <p class="kpi-value">{value_units_html}</p>
            {delta_html_content}
        </div>
    </div>
    """.replace("\n", "")
    st.markdown(html_render_content, unsafe_allow_html=True)


def get_badge_css_class(value: Any, badge_map: Dict[str, str]) -> str:
    """CSS class for a server-provided category; unknown or empty values are grey."""
    if value is None or not str(value).strip():
        return app_config.BADGE_DEFAULT_CLASS
    return badge_map.get(str(value).strip().lower(), app_config.BADGE_DEFAULT_CLASS)


def status_badge_html(label: Any, badge_map: Dict[str, str], empty_label: str = "N/A") -> str:
    text = str(label).strip() if label is not None and str(label).strip() else empty_label
    return f'<span class="status-badge {get_badge_css_class(label, badge_map)}">{html.escape(text)}</span>'


def render_status_badge(label: Any, badge_map: Dict[str, str], caption: Optional[str] = None):
    caption_html = f'<span class="badge-caption">{html.escape(caption)}</span> ' if caption else ""
    st.markdown(f"{caption_html}{status_badge_html(label, badge_map)}", unsafe_allow_html=True)


def render_detail_field(label: str, value: Any, units: str = ""):
    """One read-only "label / value" row in a detail panel."""
    if value is None or (isinstance(value, float) and pd.isna(value)) or (isinstance(value, str) and not value.strip()):
        value_text = "N/A"
    else:
        value_text = f"{value} {units}".strip() if units else str(value)
    st.markdown(
        f'<div class="detail-field"><span class="detail-label">{html.escape(label)}</span>'
        f'<span class="detail-value">{html.escape(value_text)}</span></div>',
        unsafe_allow_html=True
    )


# --- III. Layout Widgets ---

def render_panel_width_slider(page_key: str, route_path: str, disabled: bool = False) -> int:
    """
    Sidebar slider for the list/detail split. The width is route state, so it survives
    reruns and navigation back to the page.
    """
    stored_width = clamp_panel_width(get_route_state(route_path, "leftPanelWidth", default_panel_width(page_key)))
    chosen_width = st.sidebar.slider(
        "List panel width (%)",
        min_value=app_config.SPLIT_PANE_MIN_PCT, max_value=app_config.SPLIT_PANE_MAX_PCT,
        value=stored_width, step=5, key=f"{page_key}_panel_width_slider", disabled=disabled
    )
    chosen_width = clamp_panel_width(chosen_width)
    if chosen_width != stored_width:
        set_route_state(route_path, "leftPanelWidth", chosen_width)
    return chosen_width


def render_split_panes(left_width_pct: int, has_selection: bool) -> Tuple[Any, Optional[Any]]:
    """
    (left, right) containers. Without a selection the list takes the full width
    and `right` is None.
    """
    if not has_selection:
        return st.container(), None
    left_pct = clamp_panel_width(left_width_pct)
    left_col, right_col = st.columns([left_pct, 100 - left_pct], gap="medium")
    return left_col, right_col


def render_selectable_table(table_df: pd.DataFrame, key: str, selected_position: Optional[int] = None) -> Optional[int]:
    """
    Single-row selectable table. Returns the positional index of a row the user has just
    clicked, or None.

    `selected_position` is the row of the record currently open in the detail pane. It is
    part of the widget key, so closing or changing the selection starts a fresh widget and
    a stale highlighted row never swallows the next click.
    """
    widget_key = f"{key}__sel_{'none' if selected_position is None else selected_position}"
    table_event = st.dataframe(
        table_df, key=widget_key, on_select="rerun", selection_mode="single-row",
        hide_index=True, use_container_width=True
    )
    selected_rows = list(table_event.selection.rows) if table_event is not None else []
    if selected_rows and selected_rows[0] != selected_position and selected_rows[0] < len(table_df):
        return selected_rows[0]
    return None


def pagination_range_caption(pagination: Dict[str, Any]) -> str:
    """"1-50 of 120" style caption; "0 of 0" for empty lists."""
    total = int(pagination.get("total") or 0)
    if total == 0:
        return "0 of 0"
    page = int(pagination.get("page") or 1)
    limit = int(pagination.get("limit") or 1)
    first_row = (page - 1) * limit + 1
    last_row = min(page * limit, total)
    return f"{first_row}-{last_row} of {total}"


def render_pagination_controls(pagination: Dict[str, Any], key_prefix: str) -> Optional[int]:
    """First/Prev/Next/Last buttons. Returns the requested page, or None if nothing was clicked."""
    total_pages = int(pagination.get("totalPages") or 0)
    current_page = int(pagination.get("page") or 1)
    if total_pages <= 1:
        st.caption(pagination_range_caption(pagination))
        return None

    requested_page = None
    nav_cols = st.columns([1, 1, 3, 1, 1])
    with nav_cols[0]:
        if st.button("⏮", key=f"{key_prefix}_first", disabled=not pagination.get("hasPreviousPage"), help="First page"):
            requested_page = 1
    with nav_cols[1]:
        if st.button("◀", key=f"{key_prefix}_prev", disabled=not pagination.get("hasPreviousPage"), help="Previous page"):
            requested_page = current_page - 1
    with nav_cols[2]:
        st.caption(f"Page {current_page} of {total_pages}  ·  {pagination_range_caption(pagination)}")
    with nav_cols[3]:
        if st.button("▶", key=f"{key_prefix}_next", disabled=not pagination.get("hasNextPage"), help="Next page"):
            requested_page = current_page + 1
    with nav_cols[4]:
        if st.button("⏭", key=f"{key_prefix}_last", disabled=not pagination.get("hasNextPage"), help="Last page"):
            requested_page = total_pages
    return requested_page


def render_search_bar(key_prefix: str, initial_value: str = "", placeholder: str = "Search...") -> Optional[str]:
    """
    Search box submitted with Enter or the Search button.
    Returns the new term on submit, "" when cleared, None when untouched.
    """
    with st.form(key=f"{key_prefix}_search_form", clear_on_submit=False, border=False):
        search_cols = st.columns([6, 1, 1])
        with search_cols[0]:
            term = st.text_input("Search", value=initial_value, placeholder=placeholder,
                                 label_visibility="collapsed", key=f"{key_prefix}_search_input")
        with search_cols[1]:
            submitted = st.form_submit_button("Search", type="primary", use_container_width=True)
        with search_cols[2]:
            cleared = st.form_submit_button("Clear", use_container_width=True)
    if cleared:
        return ""
    if submitted:
        return term.strip()
    return None


# --- IV. Plotly Chart Generation Functions ---

def _create_empty_plot_figure(title_str: str, height_val: Optional[int], message_str: str = "No data available to display.") -> go.Figure:
    """Helper to create a blank Plotly figure with a message."""
    fig_empty = go.Figure()
    final_fig_height = height_val if height_val is not None else app_config.WEB_PLOT_DEFAULT_HEIGHT
    fig_empty.update_layout(
        title_text=f"{title_str}: {message_str}",
        height=final_fig_height,
        xaxis={'visible': False},
        yaxis={'visible': False},
        annotations=[dict(text=message_str, xref="paper", yref="paper", showarrow=False, font=dict(size=12, color=_get_theme_color(color_type="action_secondary")))]
    )
    return fig_empty


def plot_annotated_line_chart_web(
    data_series_input: pd.Series, chart_title: str, y_axis_label: str = "Value",
    line_color: Optional[str] = None,
    target_ref_line: Optional[float] = None, target_ref_label: Optional[str] = None,
    chart_height: Optional[int] = None,
    date_display_format: str = "%b %Y",
    y_axis_is_count: bool = False
) -> go.Figure:
    final_chart_height = chart_height if chart_height is not None else app_config.WEB_PLOT_COMPACT_HEIGHT
    if not isinstance(data_series_input, pd.Series) or data_series_input.empty:
        return _create_empty_plot_figure(chart_title, final_chart_height)

    data_series_clean = pd.to_numeric(data_series_input, errors='coerce')
    if data_series_clean.isnull().all():
        return _create_empty_plot_figure(chart_title, final_chart_height, "All data non-numeric or became NaN.")

    fig_line = go.Figure()
    chosen_line_color = line_color if line_color else _get_theme_color(0)

    y_hover_format_str = 'd' if y_axis_is_count else ',.1f'
    hovertemplate_line = f'<b>Date</b>: %{{x|{date_display_format}}}<br><b>{y_axis_label}</b>: %{{customdata:{y_hover_format_str}}}<extra></extra>'

    fig_line.add_trace(go.Scatter(
        x=data_series_clean.index, y=data_series_clean.values,
        mode="lines+markers", name=y_axis_label,
        line=dict(color=chosen_line_color, width=2.2), marker=dict(size=6),
        customdata=data_series_clean.values, hovertemplate=hovertemplate_line
    ))

    if target_ref_line is not None:
        target_display_label = target_ref_label if target_ref_label else f"Target: {target_ref_line:,.2f}"
        fig_line.add_hline(y=target_ref_line, line_dash="dash", line_color=_get_theme_color(color_type="status_high"), line_width=1.2,
                           annotation_text=target_display_label, annotation_position="bottom right", annotation_font_size=9)

    final_x_axis_label = data_series_clean.index.name if data_series_clean.index.name and str(data_series_clean.index.name).strip() else "Date"
    yaxis_line_config = dict(title_text=y_axis_label, rangemode='tozero' if y_axis_is_count and data_series_clean.min() >= 0 else 'normal')
    if y_axis_is_count: # Integer ticks for counts
        yaxis_line_config['tickformat'] = 'd'
        max_val_line = data_series_clean.max()
        if pd.notna(max_val_line) and max_val_line > 0:
            if max_val_line <= 10: yaxis_line_config['dtick'] = 1
            elif max_val_line <= 50: yaxis_line_config['dtick'] = 5

    fig_line.update_layout(title_text=chart_title, xaxis_title=final_x_axis_label, yaxis=yaxis_line_config,
                           height=final_chart_height, hovermode="x unified", showlegend=False)
    return fig_line


def plot_bar_chart_web(
    df_input: pd.DataFrame, x_col: str, y_col: str, chart_title: str,
    x_axis_label: Optional[str] = None, y_axis_label: Optional[str] = None,
    orientation: str = "v", bar_color: Optional[str] = None,
    chart_height: Optional[int] = None, y_axis_is_count: bool = False,
    sort_values_by_y: bool = True
) -> go.Figure:
    """Single-series bar chart. `orientation="h"` puts categories on the y axis."""
    final_chart_height = chart_height if chart_height is not None else app_config.WEB_PLOT_DEFAULT_HEIGHT
    if not isinstance(df_input, pd.DataFrame) or df_input.empty:
        return _create_empty_plot_figure(chart_title, final_chart_height)
    if x_col not in df_input.columns or y_col not in df_input.columns:
        return _create_empty_plot_figure(chart_title, final_chart_height, f"Required columns '{x_col}' or '{y_col}' missing.")

    df_plot = df_input[[x_col, y_col]].copy()
    df_plot[y_col] = pd.to_numeric(df_plot[y_col], errors='coerce')
    df_plot.dropna(subset=[y_col], inplace=True)
    if df_plot.empty:
        return _create_empty_plot_figure(chart_title, final_chart_height, "All values non-numeric.")
    if sort_values_by_y:
        df_plot.sort_values(by=y_col, ascending=(orientation == "h"), inplace=True)

    value_text_format = '%{value:d}' if y_axis_is_count else '%{value:,.1f}'
    chosen_bar_color = bar_color if bar_color else _get_theme_color(0)
    if orientation == "h":
        bar_trace = go.Bar(x=df_plot[y_col], y=df_plot[x_col].astype(str), orientation="h",
                           marker_color=chosen_bar_color, texttemplate=value_text_format, textposition="outside")
    else:
        bar_trace = go.Bar(x=df_plot[x_col].astype(str), y=df_plot[y_col],
                           marker_color=chosen_bar_color, texttemplate=value_text_format, textposition="outside")

    fig_bar = go.Figure(bar_trace)
    category_label = x_axis_label or str(x_col).replace('_', ' ').title()
    value_label = y_axis_label or str(y_col).replace('_', ' ').title()
    value_axis_config = dict(title_text=value_label, rangemode='tozero')
    if y_axis_is_count:
        value_axis_config['tickformat'] = 'd'
    if orientation == "h":
        fig_bar.update_layout(xaxis=value_axis_config, yaxis_title=category_label)
    else:
        fig_bar.update_layout(yaxis=value_axis_config, xaxis_title=category_label)
    fig_bar.update_layout(title_text=chart_title, height=final_chart_height, showlegend=False)
    return fig_bar


def plot_donut_chart_web(
    df_input: pd.DataFrame, labels_col: str, values_col: str, chart_title: str,
    color_map: Optional[Dict[str, str]] = None, chart_height: Optional[int] = None
) -> go.Figure:
    final_chart_height = chart_height if chart_height is not None else app_config.WEB_PLOT_COMPACT_HEIGHT
    if not isinstance(df_input, pd.DataFrame) or df_input.empty or labels_col not in df_input.columns or values_col not in df_input.columns:
        return _create_empty_plot_figure(chart_title, final_chart_height)

    df_plot = df_input[[labels_col, values_col]].copy()
    df_plot[values_col] = pd.to_numeric(df_plot[values_col], errors='coerce').fillna(0)
    df_plot = df_plot[df_plot[values_col] > 0]
    if df_plot.empty:
        return _create_empty_plot_figure(chart_title, final_chart_height, "No non-zero values.")

    slice_colors: List[str] = [
        (color_map or {}).get(str(label), _get_theme_color(idx)) for idx, label in enumerate(df_plot[labels_col])
    ]
    fig_donut = go.Figure(go.Pie(
        labels=df_plot[labels_col].astype(str), values=df_plot[values_col], hole=0.55,
        marker=dict(colors=slice_colors, line=dict(color="#FFFFFF", width=1.5)),
        textinfo="label+value", sort=False
    ))
    fig_donut.update_layout(title_text=chart_title, height=final_chart_height, showlegend=False)
    return fig_donut

"""CSV/JSON/PNG outputs of a diagnostic run.

Figures need matplotlib, which is an optional extra; every ``maybe_plot_*``
helper returns None when it is not installed.
"""

import json
from pathlib import Path


def ensure_dir(path):
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def save_dataframe(df, output_dir, filename):
    """Write a diagnostic table as CSV under ``output_dir``."""
    path = ensure_dir(output_dir) / filename
    df.to_csv(path, index=False)
    return path


def save_calibration_result(result, output_dir, filename="calibration_params.json"):
    """Calibrated parameters, RMSE and optimizer status as JSON."""
    path = ensure_dir(output_dir) / filename
    payload = result.as_dict()
    payload["success"] = bool(result.success)
    payload["evaluations"] = int(result.evaluations)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=float)
    return path


def save_config_snapshot(cfg, output_dir):
    """Scalar and numeric-list fields of an ``EngineConfig`` (reproducibility)."""
    path = ensure_dir(output_dir) / "config_snapshot.json"
    d = {}
    for k, v in vars(cfg).items():
        if isinstance(v, (int, float, str, bool)):
            d[k] = v
        elif isinstance(v, (list, tuple)) and all(isinstance(x, (int, float)) for x in v):
            d[k] = list(v)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(d, f, indent=2, sort_keys=True)
    return path


def _pyplot():
    try:
        import matplotlib
    except ImportError:
        return None
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    return plt


def _save_figure(plt, fig, output_dir, filename_png):
    path = ensure_dir(Path(output_dir) / "figures") / filename_png
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)
    return path


def maybe_plot_sensitivity(df, output_dir, x_col, title, xlabel, ylabel, filename_png):
    """One line per column of a wide table against ``x_col``.

    Used for the model discount curves and the volatility sweep. The figure
    is saved under ``output_dir/figures``.
    """
    plt = _pyplot()
    if plt is None:
        return None

    fig, ax = plt.subplots()
    x = df[x_col].values
    for col in df.columns:
        if col != x_col:
            ax.plot(x, df[col].values, marker="o", linewidth=1.5, label=str(col))
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    return _save_figure(plt, fig, output_dir, filename_png)


def maybe_plot_convergence(df, output_dir, filename_png="lattice_convergence.png"):
    """Absolute lattice pricing errors against the number of steps, log-log.

    ``df`` is the table of :func:`~stochastic_pricer.sensitivity.lattice_convergence`
    built with a reference price; without error columns nothing is drawn.
    """
    error_cols = [c for c in df.columns if c.endswith("_error")]
    if not error_cols:
        return None
    plt = _pyplot()
    if plt is None:
        return None

    fig, ax = plt.subplots()
    for col in error_cols:
        ax.loglog(df["steps"].values, df[col].abs().values, marker="o", label=col.replace("_error", ""))
    ax.set_title("Lattice convergence")
    ax.set_xlabel("Steps")
    ax.set_ylabel("|price - reference|")
    ax.grid(True, which="both", alpha=0.3)
    ax.legend(fontsize=8)
    return _save_figure(plt, fig, output_dir, filename_png)

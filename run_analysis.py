import math
from pathlib import Path

import QuantLib as ql

from stochastic_pricer.calibration import Calibrator, helpers_from_curve
from stochastic_pricer.config import EngineConfig
from stochastic_pricer.lattices import TimeGrid, TrinomialTree, price_bermudan
from stochastic_pricer.market import MarketLoader, QuantLibCurve
from stochastic_pricer.models import BlackKarasinski, CoxIngersollRoss, G2, HullWhite, Vasicek
from stochastic_pricer.processes import black_scholes_process
from stochastic_pricer.reporting import (
    maybe_plot_convergence,
    maybe_plot_sensitivity,
    save_calibration_result,
    save_config_snapshot,
    save_dataframe,
)
from stochastic_pricer.sensitivity import (
    black_scholes_reference,
    lattice_convergence,
    model_discount_curves,
    price_vs_volatility,
)


def main(cfg=None, curve_csv=None, out_dir=None):
    # -------------------------------------------------------------------------
    # 0. Inputs
    # -------------------------------------------------------------------------
    cfg = cfg or EngineConfig()
    cfg.apply_global_settings()

    reference_date = ql.Date(10, 9, 2025)
    project_root = Path(__file__).resolve().parent
    out_dir = Path(out_dir) if out_dir is not None else project_root / cfg.output_dir

    # -------------------------------------------------------------------------
    # 1. Initial curve (CSV if available, flat 4% otherwise)
    # -------------------------------------------------------------------------
    print("--- 1. Curve ---")
    if curve_csv is not None and Path(curve_csv).exists():
        curve = MarketLoader(reference_date).load_curve(str(curve_csv))
    else:
        curve = QuantLibCurve.flat(reference_date, 0.04)
    print(f"f(0,0)={curve.forward_rate(0.0):.6f}  P(0,10)={curve.discount(10.0):.6f}")

    # -------------------------------------------------------------------------
    # 2. Calibrate the endogenous models to the curve
    # -------------------------------------------------------------------------
    print("--- 2. Calibration ---")
    r0 = curve.forward_rate(0.0)
    helpers = helpers_from_curve(curve, cfg.report_maturities)
    calib = Calibrator(cfg)

    vasicek = Vasicek(a=0.2, b=r0, sigma=0.01, r0=r0)
    res_vasicek = calib.calibrate(vasicek, helpers, fixed=[False, False, True])
    print(f"Vasicek: {res_vasicek.as_dict()}")

    cir = CoxIngersollRoss(a=0.2, b=r0, sigma=0.05, r0=r0)
    res_cir = calib.calibrate(cir, helpers, fixed=[False, False, True])
    print(f"CIR: {res_cir.as_dict()}")

    models = {
        "Vasicek": vasicek,
        "CIR": cir,
        "Hull-White": HullWhite(curve, a=0.05, sigma=0.01),
        "Black-Karasinski": BlackKarasinski(curve, a=0.1, sigma=0.2),
        "G2": G2(curve),
    }

    # -------------------------------------------------------------------------
    # 3. Bond tables
    # -------------------------------------------------------------------------
    print("--- 3. Discount curves ---")
    df_curves = model_discount_curves(models, cfg.report_maturities)
    print(df_curves.to_string(index=False))

    bk = models["Black-Karasinski"]
    bk_tree = bk.tree_discount_bond(10.0, cfg.tree_steps)
    print(f"BK tree P(0,10)={bk_tree:.6f}  curve P(0,10)={curve.discount(10.0):.6f}")

    df_vol = price_vs_volatility(models, 10.0, cfg.vol_multipliers)

    # -------------------------------------------------------------------------
    # 4. Lattice convergence on an equity call
    # -------------------------------------------------------------------------
    print("--- 4. Lattice convergence ---")
    spot, strike, rate, vol, maturity = 100.0, 100.0, 0.05, 0.20, 1.0
    process = black_scholes_process(spot, rate, vol)
    reference = black_scholes_reference(spot, strike, rate, 0.0, vol, maturity)

    def call(s):
        return max(s - strike, 0.0)

    df_conv = lattice_convergence(
        process, call, maturity, rate, cfg.convergence_steps, reference, cfg.binomial_variant, strike
    )
    print(f"Black-Scholes reference: {reference:.6f}")
    print(df_conv.to_string(index=False))

    def put(s):
        return max(strike - s, 0.0)

    grid = TimeGrid.from_times([0.25, 0.5, 0.75, 1.0], cfg.tree_steps)
    tree = TrinomialTree(process, grid)
    discounts = [math.exp(-rate * grid.dt(i)) for i in range(grid.steps)]
    bermudan = price_bermudan(tree, put, discounts, [0.25, 0.5, 0.75])
    print(f"Quarterly Bermudan put: {bermudan:.6f}")

    # -------------------------------------------------------------------------
    # 5. Outputs
    # -------------------------------------------------------------------------
    save_config_snapshot(cfg, out_dir)
    save_calibration_result(res_vasicek, out_dir, "calibration_vasicek.json")
    save_calibration_result(res_cir, out_dir, "calibration_cir.json")
    save_dataframe(df_curves, out_dir, "model_discount_curves.csv")
    save_dataframe(df_vol, out_dir, "price_vs_volatility.csv")
    save_dataframe(df_conv, out_dir, "lattice_convergence.csv")

    maybe_plot_sensitivity(
        df_curves,
        out_dir,
        x_col="maturity",
        title="Model discount curves",
        xlabel="Maturity (years)",
        ylabel="P(0, T)",
        filename_png="discount_curves.png",
    )
    maybe_plot_sensitivity(
        df_vol,
        out_dir,
        x_col="vol_multiplier",
        title="10y bond price vs volatility (sigma multiplier)",
        xlabel="Sigma multiplier",
        ylabel="P(0, 10)",
        filename_png="price_vs_volatility.png",
    )

    maybe_plot_convergence(df_conv, out_dir)

    print(f"\nOutputs written to: {out_dir}")
    return {
        "curves": df_curves,
        "volatility": df_vol,
        "convergence": df_conv,
        "bermudan_put": bermudan,
        "bk_tree_bond": bk_tree,
    }


if __name__ == "__main__":
    main()

"""
Global configuration for the curve bootstrapper and the option pricer.

Keeps all magic numbers in one place. Override via CLI args in main.py
or by passing explicit keyword arguments to the functions that use them.
"""

from pathlib import Path


# ── paths ────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"


# ── quote ingestion ──────────────────────────────────────────────────────
SWAP_PRIORITY = 1               # swaps are exact calibration points
FUTURE_PRIORITY = 2             # futures only guide the curve between swaps
BOND_PRIORITY = 1               # govt bonds drive the bonds-only path
MAX_SWAP_RATE_PCT = 50.0        # swap quotes above this are feed garbage
MAX_FUTURE_RATE = 0.5           # implied futures rate cap (decimal)
MAJOR_CURRENCIES = ("USD", "EUR", "GBP", "CHF", "JPY")
ACT_365_CURRENCIES = ("GBP", "AUD", "NZD", "CAD", "ZAR", "HKD", "SGD")


# ── bootstrap discipline ────────────────────────────────────────────────
TENOR_MATCH_TOLERANCE = 1.0 / 365.0   # a future within a day of a swap is dropped
GUIDE_MAX_DEVIATION = 0.005           # 50bp max distance of a guide from the swap line
SWAP_EXACTNESS_TOL = 1e-8             # DF tolerance for the exact-calibration contract
FORWARD_FLOOR_TOL = 1e-10             # numerical slack on the forward >= 0 checks


# ── Nelson-Siegel ───────────────────────────────────────────────────────
NS_SWAP_WEIGHT = 10.0           # swaps dominate the weighted least squares
NS_GUIDE_WEIGHT = 1.0
NS_MAX_ITER = 500               # L-BFGS-B iteration budget
NS_TOL = 1e-12
NS_LAMBDA_BOUNDS = (0.05, 30.0)
NS_INITIAL_LAMBDA = 2.0
NS_STALL_RMSE_TOL = 2.5e-3       # a stalled fit is accepted up to 25bp rmse


# ── Bloomberg forward smoothing ─────────────────────────────────────────
BLOOMBERG_SMOOTHING_PASSES = 3
BLOOMBERG_SMOOTHING_WEIGHTS = (0.25, 0.5, 0.25)
BLOOMBERG_MAX_FORWARD_STEP = 0.02     # 200bp max jump between adjacent forwards
BLOOMBERG_KNOT_SPACING = 0.25         # sub-knots every quarter between quote tenors
BLOOMBERG_FIT_MAX_ITER = 500          # SLSQP budget for the bounded-forward fit
BLOOMBERG_FIT_TOL = 1e-9              # anchor integral and step slack accepted from the fit


# ── Hagan-West monotone convex ──────────────────────────────────────────
MC_MAX_ITER = 50                # correction passes before giving up
MC_SHRINK = 0.5                 # node forward pulled halfway to the segment mean
MC_CHECK_POINTS = 64            # forward samples per segment in the positivity check


# ── pricing ─────────────────────────────────────────────────────────────
DOUBLE_BARRIER_SERIES_TERMS = 10      # image terms each side, converges fast
DEFAULT_DIGITAL_REBATE = 1.0

# finite-difference bumps for exotic greeks (relative spot, absolute others)
FD_SPOT_BUMP = 1e-4
FD_VOL_BUMP = 1e-4
FD_RATE_BUMP = 1e-5
FD_TIME_BUMP = 1.0 / 365.0


# ── curve reports / charts ──────────────────────────────────────────────
REPORT_GRID_POINTS = 120
DARK_BG = "#0c0c16"
AXIS_TEXT_COLOR = "rgba(200,200,200,0.8)"
TITLE_COLOR = "white"
DPI = 200
FIG_WIDTH = 12
FIG_HEIGHT = 6
METHOD_COLORS = ["#ff6b6b", "#ffd93d", "#6bcb77", "#4d96ff", "#b388ff",
                 "#ff9f43", "#48dbfb", "#f368e0"]

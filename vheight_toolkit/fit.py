#!/usr/bin/env python
u"""
fit.py
Utilities for fitting Gaussian decompositions to virtual height histograms

PYTHON DEPENDENCIES:
    numpy: Scientific Computing Tools For Python
        https://numpy.org
        https://numpy.org/doc/stable/user/numpy-for-matlab-users.html
    scipy: Scientific Tools for Python
        https://docs.scipy.org/doc/

UPDATE HISTORY:
    Updated 11/2026: use least_squares and keep the last parameters if
        the maximum number of function evaluations is reached
    Updated 10/2026: switch to trust region reflective when the number
        of parameters is larger than the number of histogram bins
    Updated 09/2026: return fit status rather than raising exceptions
    Written 09/2026
"""
from __future__ import annotations

import logging
import dataclasses
import numpy as np
import scipy.stats
import scipy.optimize
from vheight_toolkit.errors import FitConvergenceError

# number of terms for each gaussian: amplitude, center and width
N_TERMS = 3

@dataclasses.dataclass(frozen=True)
class FitConfig:
    """
    Least-squares solver settings for a single histogram fit

    Parameters
    ----------
    maxfev: int, default 1600
        maximum number of function evaluations
    maxiter: int, default 200
        maximum number of iterations
    ftol: float, default 1e-10
        relative tolerance in the sum of squares
    xtol: float, default 1e-10
        relative tolerance in the parameters
    gtol: float, default 1e-10
        orthogonality tolerance of the residuals and jacobian
    """
    maxfev: int = 1600
    maxiter: int = 200
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10

    def evaluations(self, n_params: int):
        """
        Maximum number of function evaluations for a fit

        Each iteration with a forward-difference jacobian requires
        ``n_params + 1`` function evaluations

        Parameters
        ----------
        n_params: int
            number of parameters in the fit
        """
        return int(min(self.maxfev, self.maxiter*(n_params + 1)))

# PURPOSE: summation of gaussian functions
def gaussians(x: np.ndarray, *params):
    """
    Summation of Gaussian functions

    Parameters
    ----------
    x: np.ndarray
        independent variable
    params: float
        amplitude, center and width of each Gaussian function
    """
    x = np.asarray(x, dtype=np.float64)
    model = np.zeros_like(x)
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        for a, r, w in np.reshape(params, (-1, N_TERMS)):
            model += a*np.exp(-(x - r)**2/(2.0*w**2))
    return model

# PURPOSE: weighted residuals of a gaussian decomposition
def gaussian_residuals(
        params: np.ndarray,
        x: np.ndarray,
        y: np.ndarray,
        y_error: np.ndarray | None = None
    ):
    """
    Weighted residuals between observations and a summation
    of Gaussian functions

    Parameters
    ----------
    params: np.ndarray
        amplitude, center and width of each Gaussian function
    x: np.ndarray
        independent variable
    y: np.ndarray
        observations
    y_error: np.ndarray or NoneType, default None
        uncertainty of each observation
    """
    if y_error is None:
        y_error = np.ones_like(y, dtype=np.float64)
    return (np.asarray(y) - gaussians(x, *params))/y_error

# PURPOSE: optimally fit gaussian functions to a virtual height histogram
# with Levenberg-Marquardt algorithm
def fit_histogram(
        x: np.ndarray,
        hist: np.ndarray,
        priors: list,
        config: FitConfig | None = None,
        raise_on_failure: bool = False
    ):
    """
    Optimally fit a summation of Gaussian functions to a histogram
    with the Levenberg-Marquardt algorithm

    Parameters
    ----------
    x: np.ndarray
        center of each histogram bin
    hist: np.ndarray
        histogram counts
    priors: list
        initial amplitude, center and width of each Gaussian function
    config: FitConfig or NoneType, default None
        least-squares solver settings
    raise_on_failure: bool, default False
        raise ``FitConvergenceError`` if the fit fails

    Returns
    -------
    status: bool
        fit parameters are valid for use
    converged: bool
        fit converged before reaching the maximum number of evaluations
    nfev: int
        number of function evaluations
    amplitude: np.ndarray
        fit amplitude of each Gaussian function
    height: np.ndarray
        fit center of each Gaussian function
    stdev: np.ndarray
        fit width of each Gaussian function
    error: np.ndarray
        95% confidence interval of each center
    model: np.ndarray
        modelled histogram
    residuals: np.ndarray
        weighted fit residuals
    MSE: float
        mean square error
    DOF: int
        degrees of freedom
    """
    if config is None:
        config = FitConfig()
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(hist, dtype=np.float64)
    # unity is the same as no error
    y_error = np.ones_like(y)
    # initial parameters
    p0 = np.concatenate([np.atleast_1d(p) for p in priors]).astype(np.float64)
    n_peaks = len(p0)//N_TERMS
    n_max = len(y)
    n_terms = len(p0)
    # nu = Degrees of Freedom = number of measurements-number of parameters
    nu = n_max - n_terms
    # MINPACK requires at least as many observations as parameters
    method = 'lm' if (n_terms <= n_max) else 'trf'
    # run optimized least-squares fit of the weighted residuals
    # the last parameters are kept if the evaluation limit is reached
    try:
        fit = scipy.optimize.least_squares(gaussian_residuals, p0,
            args=(x, y, y_error), method=method,
            max_nfev=config.evaluations(n_terms), ftol=config.ftol,
            xtol=config.xtol, gtol=config.gtol)
    except (ValueError, RuntimeError, TypeError) as exc:
        return _failed_fit(f'{method}: {exc}', nu, raise_on_failure)
    if (fit.status < 0) or not np.all(np.isfinite(fit.x)):
        return _failed_fit(f'{method}: {fit.message}', nu, raise_on_failure)
    if (fit.status == 0):
        logging.info(f'Histogram fit reached {fit.nfev:d} evaluations ({method})')
    popt = fit.x
    # modelled histogram fit and residuals
    model = gaussians(x, *popt)
    res = gaussian_residuals(popt, x, y, y_error=y_error)
    # covariance from the jacobian (Moore-Penrose inverse of J^T J)
    _, s, VT = np.linalg.svd(fit.jac, full_matrices=False)
    threshold = np.finfo(np.float64).eps*max(fit.jac.shape)*\
        np.max(s, initial=0.0)
    VT = VT[s > threshold]
    s = s[s > threshold]
    pcov = np.dot(VT.T/s**2, VT)
    if (nu > 0):
        # Mean square error
        MSE = np.dot(res, res)/nu
        # Student T-Distribution with D.O.F. nu for 95% confidence interval
        alpha = 1.0 - 0.95
        tstar = scipy.stats.t.ppf(1.0 - (alpha/2.0), nu)
        pcov *= MSE
    else:
        MSE = np.nan
        tstar = np.nan
        pcov.fill(np.inf)
    # 1 standard deviation errors in parameters
    with np.errstate(invalid='ignore'):
        perr = np.sqrt(np.diag(pcov))
    # extract function outputs
    n = np.arange(n_peaks)*N_TERMS
    peak_amplitude = popt[n]
    peak_height = popt[n+1]
    peak_height_error = perr[n+1]
    peak_stdev = np.abs(popt[n+2])
    logging.debug(f'Histogram fit ({method}) with {n_peaks:d} peaks: '
        f'{fit.message}')
    return dict(status=True, converged=(fit.status > 0), nfev=fit.nfev,
        amplitude=peak_amplitude, height=peak_height, stdev=peak_stdev,
        error=tstar*peak_height_error, model=model, residuals=np.abs(res),
        MSE=MSE, DOF=nu)

# PURPOSE: output for a histogram fit that could not be used
def _failed_fit(message: str, nu: int, raise_on_failure: bool = False):
    logging.debug(f'Histogram fit failed: {message}')
    if raise_on_failure:
        raise FitConvergenceError(message)
    return dict(status=False, converged=False, nfev=0,
        amplitude=np.zeros((0)), height=np.zeros((0)), stdev=np.zeros((0)),
        error=np.zeros((0)), model=None, residuals=None, MSE=np.inf, DOF=nu)

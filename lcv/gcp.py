'''
Latent Causal Variable (LCV) estimate of the genetic causal proportion (gcp).

run_lcv is the entry point: it validates the input, runs the block moment estimator on
every jackknife fold, aggregates the fold values, scans gcp over [-1, 1] and returns an
LCVResult.

The test statistic for a candidate gcp value x is, per fold,

    S(x) = (k41 / f - f * k42) / max(1 / |rho|, sqrt((k41 / f)^2 + (f * k42)^2)),

with f = |rho|^(-x) and k41, k42 the mixed fourth moments after removing 3 * rho. S(x)
has mean zero when x is the true gcp. mean(S) / SE(S) is compared to a t distribution
with n_blocks - 2 degrees of freedom; the t density over the grid is used as the
likelihood for the posterior mean and SD of gcp.

'''

import warnings
import numpy as np
from collections import namedtuple
from scipy.stats import t as tdist

from . import jackknife as jk
from .moments import estimate_k4


GCP_GRID = np.arange(-100, 101) / 100.0
# grid positions of the three hypothesis tests
LOWER_BOUND_POINT = 0
ZERO_POINT = 100
UPPER_BOUND_POINT = 200


class ShapeError(ValueError):
    '''Input vectors are not one-dimensional or have different lengths.'''


class ArgumentError(TypeError):
    '''A mandatory argument is missing.'''


class LCVWarning(UserWarning):
    pass


LCVConfig = namedtuple('LCVConfig', ['crosstrait_intercept', 'ldsc_intercept',
                                     'sig_threshold', 'no_blocks', 'n1', 'n2', 'cross_int'])


_RESULT_FIELDS = ['zscore', 'pval_gcpzero_2tailed', 'gcp_pm', 'gcp_pse', 'rho_est', 'rho_err',
                  'pval_fullycausal', 'h2_zscore', 'likelihood', 'k41', 'k42', 's', 's_err',
                  'intercept', 'warnings']


s = lambda x: str(np.round(x, 4)).replace('[', '').replace(']', '').strip()


class LCVResult(namedtuple('LCVResult', _RESULT_FIELDS)):

    '''
    Output of run_lcv.

    Attributes
    ----------
    zscore : float
        Z-score (t statistic) for the null gcp = 0, signed so that positive means
        trait 1 is partially causal for trait 2.
    pval_gcpzero_2tailed : float
        Two-tailed p-value for gcp = 0.
    gcp_pm, gcp_pse : float
        Posterior mean and posterior standard deviation of gcp.
    rho_est, rho_err : float
        Genetic correlation and its jackknife SE.
    pval_fullycausal : np.array with shape (2, )
        One-tailed p-values computed at the gcp = 1 and gcp = -1 ends of the grid.
    h2_zscore : np.array with shape (2, )
        s / s_err for each trait.
    likelihood : np.array with shape (201, )
        t density of the test statistic at each value of GCP_GRID.
    k41, k42 : float
        Mixed fourth moments after removing 3 * rho.
    s, s_err : np.array with shape (2, )
        Heritability normalizations (proportional to sqrt(h2g)) and SEs.
    intercept : np.array with shape (3, )
        Trait 1, trait 2 and cross-trait LDSC intercepts.
    warnings : tuple of str
        Diagnostics raised during estimation.

    '''

    __slots__ = ()

    def summary(self):
        '''Print summary of the LCV estimates.'''
        out = []
        out.append('Genetic Correlation: ' + s(self.rho_est) + ' (' + s(self.rho_err) + ')')
        out.append('h2 Z-scores: ' + s(self.h2_zscore))
        out.append('Intercepts (trait 1, trait 2, cross-trait): ' + s(self.intercept))
        out.append('Posterior mean gcp: ' + s(self.gcp_pm) + ' (' + s(self.gcp_pse) + ')')
        out.append('Z-score (gcp = 0): ' + s(self.zscore))
        out.append('P (gcp = 0): ' + str(self.pval_gcpzero_2tailed))
        out.append('P (fully causal): ' + ' '.join(str(p) for p in self.pval_fullycausal))
        for w in self.warnings:
            out.append('WARNING: ' + w)

        return '\n'.join(out)


def _as_vector(x, name):
    if x is None:
        raise ArgumentError('{N} is required.'.format(N=name))
    x = np.asarray(x, dtype=float)
    if x.ndim == 2 and x.shape[1] == 1:
        x = x[:, 0]
    if x.ndim != 1:
        raise ShapeError('{N} must be an Mx1 vector; got shape {S}.'.format(N=name, S=x.shape))

    return x


def check_vectors(ell, z1, z2, weights=None):
    '''
    Check that ell, z1, z2 (and weights, if given) are vectors of the same length.

    Returns
    -------
    ell, z1, z2, weights : np.array with shape (n_snp, )
        weights defaults to 1 / max(1, ell).

    '''
    ell = _as_vector(ell, 'ell')
    z1 = _as_vector(z1, 'z1')
    z2 = _as_vector(z2, 'z2')
    M = len(ell)
    if len(z1) != M or len(z2) != M:
        raise ShapeError('Z-scores must have the same length as the LD Scores.')
    if weights is None:
        weights = 1.0 / np.maximum(1, ell)
    else:
        weights = _as_vector(weights, 'weights')
        if len(weights) != M:
            raise ShapeError('weights must have the same length as the LD Scores.')
    if np.any(weights <= 0):
        raise ValueError('Weights must be > 0')

    return ell, z1, z2, weights


def default_config(n_snp, crosstrait_intercept=1, ldsc_intercept=1, sig_threshold=np.inf,
                   no_blocks=100, cross_int=None, n1=None, n2=None):
    '''Fill in defaults and check the configuration.'''
    if crosstrait_intercept not in (0, 1, 2):
        raise ValueError('crosstrait_intercept must be 0, 1 or 2.')
    if ldsc_intercept not in (0, 1):
        raise ValueError('ldsc_intercept must be 0 or 1.')
    if int(no_blocks) != no_blocks or no_blocks < 3:
        raise ValueError('no_blocks must be an integer >= 3.')
    if no_blocks > n_snp:
        raise ValueError('More blocks than data points.')
    if crosstrait_intercept == 2 and cross_int is None:
        raise ArgumentError('cross_int is required when crosstrait_intercept=2.')
    if ldsc_intercept == 0:
        n1 = 1.0 if n1 is None else float(n1)
        n2 = 1.0 if n2 is None else float(n2)
    if cross_int is not None:
        cross_int = float(cross_int)

    return LCVConfig(crosstrait_intercept=int(crosstrait_intercept),
                     ldsc_intercept=int(ldsc_intercept), sig_threshold=float(sig_threshold),
                     no_blocks=int(no_blocks), n1=n1, n2=n2, cross_int=cross_int)


def _t_stat(mean, se):
    '''mean / se, with 0 / 0 := 0 and x / 0 := sign(x) * inf.'''
    mean = np.asarray(mean, dtype=float)
    se = np.asarray(se, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        t = np.where(se == 0, np.where(mean == 0, 0.0, np.sign(mean) * np.inf), mean / se)
    return t


def gcp_statistics(rho_jk, asym_jk1, asym_jk2, grid=GCP_GRID):
    '''
    Per-grid-point t statistics.

    Parameters
    ----------
    rho_jk, asym_jk1, asym_jk2 : np.array with shape (n_blocks, )
        Per-fold genetic correlation and debiased mixed fourth moments.
    grid : np.array with shape (n_grid, )
        Candidate gcp values.

    Returns
    -------
    t_stat : np.array with shape (n_grid, )
        mean(S(x)) / SE(S(x)) for each x in grid.

    '''
    abs_rho = np.abs(np.asarray(rho_jk, dtype=float))
    asym_jk1 = np.asarray(asym_jk1, dtype=float)
    asym_jk2 = np.asarray(asym_jk2, dtype=float)
    # |rho| is real, so f is real for every x
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        fx = abs_rho[np.newaxis, :] ** (-np.asarray(grid)[:, np.newaxis])
        a1 = asym_jk1 / fx
        a2 = fx * asym_jk2
        numer = a1 - a2
        denom = np.maximum(1 / abs_rho, np.sqrt(a1 ** 2 + a2 ** 2))
        pct_diff_jk = numer / denom
        est = np.mean(pct_diff_jk, axis=1)
        est_err = jk.jknife_se(pct_diff_jk.T)

    return _t_stat(est, est_err)


def posterior(likelihood, grid=GCP_GRID):
    '''Posterior mean and SD of gcp under a uniform prior on the grid.'''
    likelihood = np.asarray(likelihood, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        tot = np.sum(likelihood)
        gcp_est = np.sum(likelihood * grid) / tot
        gcp_var = np.sum(likelihood * grid ** 2) / tot - gcp_est ** 2

    return gcp_est, np.sqrt(np.maximum(gcp_var, 0))


def diagnostics(agg):
    '''
    Check the aggregated estimates for signs of unreliable output.

    Returns
    -------
    msgs : list of str
        One message per failed check; empty if nothing looks wrong.

    '''
    msgs = []
    with np.errstate(divide='ignore', invalid='ignore'):
        h2_zscore = agg.s / agg.s_err
        rho_zscore = agg.rho / agg.rho_err

    if np.any(agg.s_jk <= 0) or not np.isfinite(agg.rho):
        msgs.append('Negative heritability estimates leading to unstable results and false positives')
    elif np.any(h2_zscore < 4):
        msgs.append('Very noisy heritability estimates potentially leading to false positives')
    elif np.any(h2_zscore < 7):
        msgs.append('Borderline noisy heritability estimates potentially leading to false positives')

    if np.abs(rho_zscore) < 2:
        msgs.append('No significantly nonzero genetic correlation, potentially leading to conservative p-values')

    return msgs


def run_lcv(ell=None, z1=None, z2=None, crosstrait_intercept=1, ldsc_intercept=1,
            weights=None, sig_threshold=np.inf, no_blocks=100, cross_int=None, n1=None, n2=None,
            estimator=estimate_k4):
    '''
    Run LCV on summary statistics for two traits.

    Parameters
    ----------
    ell : array with shape (M, )
        LD Scores, ordered so that jackknife blocks are contiguous in the genome.
    z1, z2 : array with shape (M, )
        Z-scores or per-normalized-genotype effect estimates (LCV is invariant to
        their scale).
    crosstrait_intercept : int
        0 if cohorts are disjoint, 1 if overlap is possible but unknown, 2 if the
        sampling error covariance cross_int is known.
    ldsc_intercept : int
        1 to estimate the LDSC intercepts, 0 to fix them to 1 / n1 and 1 / n2.
    weights : array with shape (M, )
        Regression weights; default 1 / max(1, ell).
    sig_threshold : float
        SNPs with chi^2 > sig_threshold * mean(chi^2) are excluded when estimating
        the LDSC intercepts (e.g. 30 to drop genome-wide significant SNPs).
    no_blocks : int
        Number of jackknife blocks.
    cross_int : float
        Sampling error covariance, required when crosstrait_intercept=2.
    n1, n2 : float
        1 / var of the sampling error of z1, z2; default 1 when ldsc_intercept=0.
    estimator : function
        Block moment estimator; see lcv.moments.estimate_k4 for the contract.

    Returns
    -------
    result : LCVResult

    Raises
    ------
    ArgumentError :
        If ell, z1 or z2 is missing (or None), or cross_int is missing with
        crosstrait_intercept=2.
    ShapeError :
        If ell, z1, z2, weights are not vectors of equal length.
    ValueError :
        If the configuration is out of range.

    '''
    ell, z1, z2, weights = check_vectors(ell, z1, z2, weights)
    config = default_config(len(ell), crosstrait_intercept=crosstrait_intercept,
                            ldsc_intercept=ldsc_intercept, sig_threshold=sig_threshold,
                            no_blocks=no_blocks, cross_int=cross_int, n1=n1, n2=n2)

    delete_values = jk.delete_values(ell, z1, z2, weights, config, estimator)
    return lcv_from_delete_values(delete_values)


def lcv_from_delete_values(delete_values):
    '''Everything in run_lcv downstream of the block moment estimator.'''
    agg = jk.aggregate(delete_values)
    n_blocks = len(agg.rho_jk)
    df = n_blocks - 2
    flip = np.sign(agg.rho)

    t_stat = gcp_statistics(agg.rho_jk, agg.asym_jk1, agg.asym_jk2)
    likelihood = tdist.pdf(t_stat, df)
    p_fullcausal1 = tdist.cdf(flip * t_stat[UPPER_BOUND_POINT], df)
    p_fullcausal2 = tdist.cdf(-flip * t_stat[LOWER_BOUND_POINT], df)
    zsc_asym = flip * t_stat[ZERO_POINT]
    p_gcpzero_2tailed = 2 * tdist.cdf(-np.abs(zsc_asym), df)
    gcp_est, gcp_err = posterior(likelihood)

    msgs = diagnostics(agg)
    for msg in msgs:
        warnings.warn(msg, LCVWarning)

    with np.errstate(divide='ignore', invalid='ignore'):
        h2_zscore = agg.s / agg.s_err

    return LCVResult(zscore=float(zsc_asym), pval_gcpzero_2tailed=float(p_gcpzero_2tailed),
                     gcp_pm=float(gcp_est), gcp_pse=float(gcp_err), rho_est=float(agg.rho),
                     rho_err=agg.rho_err,
                     pval_fullycausal=np.array([p_fullcausal1, p_fullcausal2]),
                     h2_zscore=h2_zscore, likelihood=likelihood,
                     k41=float(np.mean(agg.asym_jk1)), k42=float(np.mean(agg.asym_jk2)),
                     s=agg.s, s_err=agg.s_err, intercept=agg.intercept, warnings=tuple(msgs))

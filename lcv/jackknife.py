'''
Leave-one-block-out jackknife for LCV.

Each fold drops one contiguous block of SNPs and re-estimates the mixed fourth moments
on the SNPs that remain. The fold values are delete values in the usual block jackknife
sense, but LCV works with them directly rather than converting to pseudovalues: point
estimates are means of the delete values and standard errors are std(delete values) *
sqrt(n_blocks + 1).

The convention in this module is that the first dimension of every array indexes SNPs
(or folds, since a fold is like a datapoint).

'''

import numpy as np
from collections import namedtuple

from .moments import BlockMoments


Aggregate = namedtuple('Aggregate', ['rho', 'rho_err', 's', 's_err', 'intercept',
                                     'rho_jk', 'asym_jk1', 'asym_jk2', 's_jk'])


def get_separators(N, n_blocks):
    '''
    Block boundaries for the LCV jackknife.

    Every block has floor(N / n_blocks) SNPs. The remainder (the last N % n_blocks SNPs)
    is never held out, so it is retained in every fold.

    '''
    if n_blocks < 1:
        raise ValueError('n_blocks must be a positive integer.')
    if n_blocks > N:
        raise ValueError('More blocks than data points.')

    blocksize = N // n_blocks
    return np.arange(n_blocks + 1) * blocksize


def retained_indices(N, s, i):
    '''Indices of the SNPs kept in fold i (everything outside [s[i], s[i + 1])).'''
    return np.concatenate((np.arange(0, s[i]), np.arange(s[i + 1], N)))


def delete_values(ell, z1, z2, weights, config, estimator):
    '''
    Run the block moment estimator once per fold.

    Parameters
    ----------
    ell, z1, z2, weights : np.array with shape (n_snp, )
        LD scores, Z-scores for each trait and regression weights.
    config : lcv.gcp.LCVConfig
        Validated configuration.
    estimator : function
        Block moment estimator with the signature of lcv.moments.estimate_k4.

    Returns
    -------
    delete_values : np.array with shape (n_blocks, 8)
        Row i holds the BlockMoments fields estimated without block i.

    '''
    N = len(ell)
    s = get_separators(N, config.no_blocks)
    d = []
    for i in range(config.no_blocks):
        ii = retained_indices(N, s, i)
        d.append(tuple(BlockMoments(*estimator(
            ell[ii], z1[ii], z2[ii], config.crosstrait_intercept, config.ldsc_intercept,
            weights[ii], config.sig_threshold, n1=config.n1, n2=config.n2,
            cross_int=config.cross_int))))

    return np.array(d, dtype=float).reshape((config.no_blocks, len(BlockMoments._fields)))


def jknife_se(values):
    '''Jackknife standard error of the mean of leave-one-out values, per column.'''
    values = np.asarray(values, dtype=float)
    n_blocks = values.shape[0]
    return np.std(values, axis=0, ddof=1) * np.sqrt(n_blocks + 1)


def aggregate(delete_values):
    '''
    Reduce per-fold moments to point estimates and jackknife standard errors.

    Parameters
    ----------
    delete_values : np.array with shape (n_blocks, 8)
        Output of delete_values, columns ordered as BlockMoments._fields.

    Returns
    -------
    agg : Aggregate
        rho, rho_err : genetic correlation and its SE.
        s, s_err : np.array with shape (2, ), heritability normalizations and SEs.
        intercept : np.array with shape (3, ), trait 1, trait 2 and cross-trait
            LDSC intercepts.
        rho_jk : np.array with shape (n_blocks, ), per-fold genetic correlation.
        asym_jk1, asym_jk2 : np.array with shape (n_blocks, ), per-fold mixed fourth
            moments with the Gaussian part 3 * rho_jk removed.
        s_jk : np.array with shape (n_blocks, 2), per-fold normalizations.

    '''
    d = BlockMoments(*np.asarray(delete_values, dtype=float).T)
    intercept = np.array([np.mean(d.intercept_1), np.mean(d.intercept_2),
                          np.mean(d.intercept_12)])
    rho_jk = d.rho
    s_jk = np.vstack((d.s1, d.s2)).T
    # debias each fold with its own rho so that folds stay independent
    asym_jk1 = d.k41 - 3 * rho_jk
    asym_jk2 = d.k42 - 3 * rho_jk

    return Aggregate(rho=np.mean(rho_jk), rho_err=float(jknife_se(rho_jk)),
                     s=np.mean(s_jk, axis=0), s_err=jknife_se(s_jk), intercept=intercept,
                     rho_jk=rho_jk, asym_jk1=asym_jk1, asym_jk2=asym_jk2, s_jk=s_jk)

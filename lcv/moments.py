'''
Mixed fourth moment estimator for one jackknife fold.

Model: z_k = alpha_k + e_k, where alpha is the genetic component and the sampling
errors (e_1, e_2) have variances equal to the LDSC intercepts and covariance equal to
the cross-trait intercept. All moments are corrected for the sampling error terms, and
then normalized so that E(alpha_1^2) = E(alpha_2^2) = 1.

'''

import numpy as np
from collections import namedtuple


BlockMoments = namedtuple('BlockMoments', ['rho', 'k41', 'k42', 'intercept_12', 's1', 's2',
                                           'intercept_1', 'intercept_2'])


def append_intercept(x):
    '''Appends a column of ones to the design matrix.'''
    n_row = x.shape[0]
    intercept = np.ones((n_row, 1))
    return np.concatenate((x, intercept), axis=1)


def wls(x, y, w):
    '''
    Weighted least squares.

    Parameters
    ----------
    x : np.array with shape (n, p)
        Independent variable.
    y : np.array with shape (n, 1)
        Dependent variable.
    w : np.array with shape (n, 1)
        Regression weights (inverse variance scale).

    Returns
    -------
    coef : np.array with shape (p, )
        WLS coefficients.

    '''
    (n, p) = x.shape
    if y.shape != (n, 1):
        raise ValueError(
            'y has shape {S}. y must have shape ({N}, 1).'.format(S=y.shape, N=n))
    if w.shape != (n, 1):
        raise ValueError(
            'w has shape {S}. w must have shape ({N}, 1).'.format(S=w.shape, N=n))
    if np.any(w <= 0):
        raise ValueError('Weights must be > 0')

    w = np.sqrt(w / float(np.sum(w)))
    coef = np.linalg.lstsq(np.multiply(x, w), np.multiply(y, w), rcond=None)[0]
    return coef.reshape(p)


def ldsc_intercept_wls(ell, y, weights):
    '''Intercept of the weighted LD Score regression y ~ ell + 1.'''
    n = len(ell)
    x = append_intercept(np.reshape(ell, (n, 1)))
    return wls(x, np.reshape(y, (n, 1)), np.reshape(weights, (n, 1)))[1]


def signed_sqrt(x):
    '''sign(x) * sqrt(|x|), so that negative heritability stays visible as a negative s.'''
    return np.sign(x) * np.sqrt(np.abs(x))


def estimate_k4(ell, z1, z2, crosstrait_intercept, ldsc_intercept, weights, sig_threshold,
                n1=None, n2=None, cross_int=None):
    '''
    Estimate genetic correlation and mixed fourth moments on one set of SNPs.

    Parameters
    ----------
    ell : np.array with shape (n_snp, )
        LD Scores.
    z1, z2 : np.array with shape (n_snp, )
        Z-scores (or effect size estimates) for traits 1 and 2.
    crosstrait_intercept : int
        0: cohorts are disjoint; 1: estimate the cross-trait intercept by LD Score
        regression of z1 * z2; 2: use cross_int.
    ldsc_intercept : int
        1: estimate the single-trait intercepts by LD Score regression; 0: fix them to
        1 / n1 and 1 / n2.
    weights : np.array with shape (n_snp, )
        LD Score regression weights.
    sig_threshold : float
        SNPs with chi^2 above sig_threshold * mean(chi^2) are left out of the
        single-trait intercept regressions.
    n1, n2 : float
        Inverse sampling variances of z1 and z2 (used when ldsc_intercept=0).
    cross_int : float
        Sampling error covariance between z1 and z2 (used when crosstrait_intercept=2).

    Returns
    -------
    moments : BlockMoments
        rho, k41 = E(a1^3 a2), k42 = E(a2^3 a1) on the normalized scale, cross-trait
        intercept, normalizations s1, s2 (signed sqrt of the genetic second moments)
        and the trait 1 and trait 2 intercepts.

    '''
    chisq1 = z1 * z1
    chisq2 = z2 * z2
    if ldsc_intercept == 1:
        keep1 = chisq1 < sig_threshold * np.mean(chisq1)
        keep2 = chisq2 < sig_threshold * np.mean(chisq2)
        intercept_1 = ldsc_intercept_wls(ell[keep1], chisq1[keep1], weights[keep1])
        intercept_2 = ldsc_intercept_wls(ell[keep2], chisq2[keep2], weights[keep2])
    else:
        intercept_1 = 1.0 / (1 if n1 is None else n1)
        intercept_2 = 1.0 / (1 if n2 is None else n2)

    z12 = z1 * z2
    if crosstrait_intercept == 0:
        intercept_12 = 0.0
    elif crosstrait_intercept == 1:
        intercept_12 = ldsc_intercept_wls(ell, z12, weights)
    else:
        intercept_12 = float(cross_int)

    # second moments of alpha
    m11 = np.mean(z12) - intercept_12
    m20 = np.mean(chisq1) - intercept_1
    m02 = np.mean(chisq2) - intercept_2
    # E(z1^3 z2) = E(a1^3 a2) + 3 E(a1^2) c + 3 E(a1 a2) i1 + 3 i1 c
    m31 = np.mean(chisq1 * z12) - 3 * (m20 * intercept_12 + m11 * intercept_1 +
                                        intercept_1 * intercept_12)
    m13 = np.mean(chisq2 * z12) - 3 * (m02 * intercept_12 + m11 * intercept_2 +
                                        intercept_2 * intercept_12)

    s1 = signed_sqrt(m20)
    s2 = signed_sqrt(m02)
    # s1 * s2, taken as one square root so that rho is exactly 1 when z1 == z2
    s12 = np.sign(m20) * np.sign(m02) * np.sqrt(np.abs(m20 * m02))
    with np.errstate(divide='ignore', invalid='ignore'):
        rho = m11 / s12
        k41 = m31 / (np.abs(m20) * s12)
        k42 = m13 / (np.abs(m02) * s12)

    return BlockMoments(float(rho), float(k41), float(k42), float(intercept_12), float(s1),
                        float(s2), float(intercept_1), float(intercept_2))

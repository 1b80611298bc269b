'''
This module deals with getting the data needed for LCV from files into memory and
checking that the input makes sense. There is no math here; LCV is implemented in the
gcp module.

'''

import itertools as it
import numpy as np
import pandas as pd

from . import parse as ps
from . import gcp
from . import jackknife as jk
from .moments import BlockMoments, estimate_k4


_N_CHR = 22
# complementary bases
COMPLEMENT = {'A': 'T', 'T': 'A', 'C': 'G', 'G': 'C'}
# bases
BASES = list(COMPLEMENT.keys())
# true iff strand ambiguous
STRAND_AMBIGUOUS = {''.join(x): x[0] == COMPLEMENT[x[1]]
                    for x in it.product(BASES, BASES)
                    if x[0] != x[1]}
# SNPS we want to keep (pairs of alleles)
VALID_SNPS = {x for x in [''.join(y) for y in it.product(BASES, BASES)]
              if x[0] != x[1] and not STRAND_AMBIGUOUS[x]}
# T iff SNP 1 has the same alleles as SNP 2 (allowing for strand or ref allele flip).
MATCH_ALLELES = {x for x in [''.join(y) for y in it.product(VALID_SNPS, VALID_SNPS)]
                 # strand and ref match
                 if ((x[0] == x[2]) and (x[1] == x[3])) or
                 # ref match, strand flip
                 ((x[0] == COMPLEMENT[x[2]]) and (x[1] == COMPLEMENT[x[3]])) or
                 # ref flip, strand match
                 ((x[0] == x[3]) and (x[1] == x[2])) or
                 ((x[0] == COMPLEMENT[x[3]]) and (x[1] == COMPLEMENT[x[2]]))}  # strand and ref flip
# T iff SNP 1 has the same alleles as SNP 2 w/ ref allele flip.
FLIP_ALLELES = {''.join(x):
                ((x[0] == x[3]) and (x[1] == x[2])) or  # strand match
                # strand flip
                ((x[0] == COMPLEMENT[x[3]]) and (x[1] == COMPLEMENT[x[2]]))
                for x in MATCH_ALLELES}


def _select_and_log(x, ii, log, msg):
    '''Fiter down to rows that are True in ii. Log # of SNPs removed.'''
    new_len = ii.sum()
    if new_len == 0:
        raise ValueError(msg.format(N=0))
    else:
        x = x[ii]
        log.log(msg.format(N=new_len))
    return x


def smart_merge(x, y):
    '''Check if SNP columns are equal. If so, save time by using concat instead of merge.'''
    if len(x) == len(y) and (x.index == y.index).all() and (x.SNP == y.SNP).all():
        x = x.reset_index(drop=True)
        y = y.reset_index(drop=True).drop('SNP', axis=1)
        out = pd.concat([x, y], axis=1)
    else:
        out = pd.merge(x, y, how='inner', on='SNP')
    return out


def _merge_and_log(ld, sumstats, noun, log):
    '''Wrap smart merge with log messages about # of SNPs.'''
    sumstats = smart_merge(ld, sumstats)
    msg = 'After merging with {F}, {N} SNPs remain.'
    if len(sumstats) == 0:
        raise ValueError(msg.format(N=len(sumstats), F=noun))
    else:
        log.log(msg.format(N=len(sumstats), F=noun))

    return sumstats


def _read_sumstats(log, fh, alleles=True, dropna=True):
    '''Parse summary statistics.'''
    log.log('Reading summary statistics from {S} ...'.format(S=fh))
    sumstats = ps.sumstats(fh, alleles=alleles, dropna=dropna)
    log_msg = 'Read summary statistics for {N} SNPs.'
    log.log(log_msg.format(N=len(sumstats)))
    m = len(sumstats)
    sumstats = sumstats.drop_duplicates(subset='SNP')
    if m > len(sumstats):
        log.log(
            'Dropped {M} SNPs with duplicated rs numbers.'.format(M=m - len(sumstats)))

    return sumstats


def _read_ref_ld(args, log):
    '''Read reference LD Scores (--ref-ld or --ref-ld-chr).'''
    try:
        if args.ref_ld:
            log.log('Reading LD Scores from {F} ...'.format(F=args.ref_ld))
            ref_ld = ps.ldscore(args.ref_ld)
        else:
            f = ps.sub_chr(args.ref_ld_chr, '[1-{N}]'.format(N=_N_CHR))
            log.log('Reading LD Scores from {F} ...'.format(F=f))
            ref_ld = ps.ldscore(args.ref_ld_chr, _N_CHR)
    except ValueError:
        log.log('Error parsing LD Scores.')
        raise

    log.log('Read LD Scores for {N} SNPs.'.format(N=len(ref_ld)))
    return ref_ld


def _merge_sumstats_sumstats(sumstats1, sumstats2, log):
    '''Merge two sets of summary statistics.'''
    sumstats1 = sumstats1.rename(columns={'N': 'N1', 'Z': 'Z1'})
    sumstats2 = sumstats2.rename(
        columns={'A1': 'A1x', 'A2': 'A2x', 'N': 'N2', 'Z': 'Z2'})
    return _merge_and_log(sumstats1, sumstats2, 'summary statistics', log)


def _filter_alleles(alleles):
    '''Remove bad variants (mismatched alleles, non-SNPs, strand ambiguous).'''
    ii = alleles.apply(lambda y: y in MATCH_ALLELES)
    return ii


def _align_alleles(z, alleles):
    '''Align Z1 and Z2 to same choice of ref allele (allowing for strand flip).'''
    try:
        z = z * (-1) ** alleles.apply(lambda y: FLIP_ALLELES[y]).astype(int)
    except KeyError as e:
        msg = 'Incompatible alleles in .sumstats files: %s. ' % e.args
        msg += 'Did you forget to use --merge-alleles with munge_sumstats.py?'
        raise KeyError(msg)
    return z


def read_lcv_sumstats(args, log):
    '''
    Read LD Scores and two sets of summary statistics, merge on SNP (keeping LD Score
    order) and align trait 2 to the trait 1 reference allele.

    Returns
    -------
    sumstats : pd.DataFrame
        Columns SNP, L2, Z1, Z2.

    '''
    ref_ld = _read_ref_ld(args, log)
    sumstats1 = _read_sumstats(log, args.sumstats1)
    sumstats2 = _read_sumstats(log, args.sumstats2)
    sumstats = _merge_and_log(ref_ld, sumstats1, 'LD Scores', log)
    sumstats = _merge_sumstats_sumstats(sumstats, sumstats2, log)
    alleles = sumstats.A1 + sumstats.A2 + sumstats.A1x + sumstats.A2x
    if not args.no_check_alleles:
        ii = _filter_alleles(alleles)
        sumstats = _select_and_log(sumstats, ii, log, '{N} SNPs with valid alleles.')
        sumstats['Z2'] = _align_alleles(sumstats.Z2, alleles[ii])

    return sumstats.drop(['A1', 'A1x', 'A2', 'A2x', 'N1', 'N2'], axis=1).reset_index(drop=True)


def _print_likelihood(lcvhat, ofh, log):
    '''Prints the likelihood of gcp over the grid.'''
    log.log('Printing gcp likelihood to {F}.'.format(F=ofh))
    df = pd.DataFrame({'GCP': gcp.GCP_GRID, 'LIKELIHOOD': lcvhat.likelihood})
    df.to_csv(ofh, sep='\t', index=False)


def _print_delete_values(delete_values, ofh, log):
    '''Prints per-fold block moments.'''
    log.log('Printing block jackknife delete values to {F}.'.format(F=ofh))
    header = '\t'.join(BlockMoments._fields)
    np.savetxt(ofh, delete_values, delimiter='\t', header=header, comments='')


def _get_lcv_table(lcvhat):
    '''One-row table of LCV results.'''
    x = pd.DataFrame({
        'gcp_pm': [lcvhat.gcp_pm], 'gcp_pse': [lcvhat.gcp_pse],
        'zscore': [lcvhat.zscore], 'p_gcp0': [lcvhat.pval_gcpzero_2tailed],
        'p_fullycausal1': [lcvhat.pval_fullycausal[0]],
        'p_fullycausal2': [lcvhat.pval_fullycausal[1]],
        'rho': [lcvhat.rho_est], 'rho_se': [lcvhat.rho_err],
        'h2_z1': [lcvhat.h2_zscore[0]], 'h2_z2': [lcvhat.h2_zscore[1]],
        'int1': [lcvhat.intercept[0]], 'int2': [lcvhat.intercept[1]],
        'gcov_int': [lcvhat.intercept[2]]})
    return x


def estimate_gcp(args, log):
    '''Estimate the genetic causal proportion between the traits in --sumstats1/2.'''
    sumstats = read_lcv_sumstats(args, log)
    n_snp = len(sumstats)
    n_blocks = min(n_snp, args.n_blocks)
    log.log('Running LCV on {M} SNPs with {B} jackknife blocks.'.format(M=n_snp, B=n_blocks))
    ell = sumstats.L2.to_numpy()
    z1 = sumstats.Z1.to_numpy()
    z2 = sumstats.Z2.to_numpy()
    ell, z1, z2, weights = gcp.check_vectors(ell, z1, z2)
    config = gcp.default_config(n_snp, crosstrait_intercept=args.crosstrait_intercept,
                                ldsc_intercept=0 if args.no_intercept else 1,
                                sig_threshold=args.sig_threshold, no_blocks=n_blocks,
                                cross_int=args.cross_int, n1=args.n1, n2=args.n2)
    delete_values = jk.delete_values(ell, z1, z2, weights, config, estimate_k4)
    lcvhat = gcp.lcv_from_delete_values(delete_values)

    log.log('\nLCV Results\n-----------')
    log.log(lcvhat.summary() + '\n')
    ofh = args.out + '.lcv'
    _get_lcv_table(lcvhat).to_csv(ofh, sep='\t', index=False, float_format='%.6g')
    log.log('Results printed to ' + ofh)
    if args.print_likelihood:
        _print_likelihood(lcvhat, args.out + '.likelihood', log)
    if args.print_delete_vals:
        _print_delete_values(delete_values, args.out + '.delete', log)

    return lcvhat

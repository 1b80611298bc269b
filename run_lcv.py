#!/usr/bin/env python
'''
LCV is a command line tool for estimating the genetic causal proportion (gcp) between
two traits from GWAS summary statistics and LD Scores, using the Latent Causal Variable
model.

'''

import lcv.sumstats as sumstats
import numpy as np
import time, sys, traceback, argparse
from functools import reduce


__version__ = '1.0.0'
MASTHEAD = "*********************************************************************\n"
MASTHEAD += "* Latent Causal Variable (LCV)\n"
MASTHEAD += "* Version {V}\n".format(V=__version__)
MASTHEAD += "* Genetic causal proportion from LD Scores and summary statistics\n"
MASTHEAD += "* GNU General Public License v3\n"
MASTHEAD += "*********************************************************************\n"
np.set_printoptions(linewidth=1000)
np.set_printoptions(precision=4)


def sec_to_str(t):
    '''Convert seconds to days:hours:minutes:seconds'''
    [d, h, m, s, n] = reduce(lambda ll, b : divmod(ll[0], b) + ll[1:], [(t, 1), 60, 60, 24])
    f = ''
    if d > 0:
        f += '{D}d:'.format(D=d)
    if h > 0:
        f += '{H}h:'.format(H=h)
    if m > 0:
        f += '{M}m:'.format(M=m)

    f += '{S}s'.format(S=s)
    return f


class Logger(object):
    '''
    Lightweight logging.

    '''
    def __init__(self, fh):
        self.log_fh = open(fh, 'w')

    def log(self, msg):
        '''
        Print to log file and stdout with a single command.

        '''
        print(msg, file=self.log_fh)
        print(msg)


parser = argparse.ArgumentParser()
parser.add_argument('--out', default='lcv', type=str,
    help='Output filename prefix. If --out is not set, LCV will use lcv as the '
    'defualt output filename prefix.')
parser.add_argument('--sumstats1', default=None, type=str,
    help='Filename for a .sumstats[.gz] file for trait 1 (output of munge_sumstats.py).')
parser.add_argument('--sumstats2', default=None, type=str,
    help='Filename for a .sumstats[.gz] file for trait 2.')
parser.add_argument('--ref-ld', default=None, type=str,
    help='Filename prefix for a single LD Score file. '
    'LCV will automatically append .l2.ldscore/.l2.ldscore.gz to the filename prefix.')
parser.add_argument('--ref-ld-chr', default=None, type=str,
    help='Same as --ref-ld, but will automatically concatenate .l2.ldscore files split '
    'across 22 chromosomes. If the filename prefix contains the symbol @, LCV will '
    'replace the @ symbol with chromosome numbers. Otherwise, LCV will append chromosome '
    'numbers to the end of the filename prefix.')
parser.add_argument('--n-blocks', default=100, type=int,
    help='Number of block jackknife blocks.')
parser.add_argument('--crosstrait-intercept', default=1, type=int, choices=[0, 1, 2],
    help='0 if the GWAS cohorts are disjoint, 1 (default) to estimate the cross-trait '
    'intercept, 2 to use the sampling error covariance given by --cross-int.')
parser.add_argument('--cross-int', default=None, type=float,
    help='Sampling error covariance between Z1 and Z2. For use with --crosstrait-intercept 2.')
parser.add_argument('--no-intercept', action='store_true',
    help='Constrain the single-trait LD Score regression intercepts to 1 / N1 and 1 / N2 '
    '(set with --n1 and --n2, default 1). The N column of the '
    '.sumstats files is not used.')
parser.add_argument('--n1', default=None, type=float,
    help='Inverse sampling variance of Z1. For use with --no-intercept.')
parser.add_argument('--n2', default=None, type=float,
    help='Inverse sampling variance of Z2. For use with --no-intercept.')
parser.add_argument('--sig-threshold', default=np.inf, type=float,
    help='SNPs with chi^2 above this multiple of the mean chi^2 are excluded when '
    'estimating the LD Score regression intercepts. E.g., 30.')
parser.add_argument('--no-check-alleles', default=False, action='store_true',
    help='Skip checking whether the alleles match. This check is redundant for pairs '
    'of sumstats files generated using munge_sumstats.py and the same argument to the '
    '--merge-alleles flag.')
parser.add_argument('--print-likelihood', default=False, action='store_true',
    help='Print the likelihood of gcp over the grid -1, -0.99, ..., 1 to OUT.likelihood.')
parser.add_argument('--print-delete-vals', default=False, action='store_true',
    help='If this flag is set, LCV will print the block jackknife delete-values '
    '(the block moments estimated from the data with a block removed) to OUT.delete.')


def main(argv=None):
    args = parser.parse_args(argv)
    log = Logger(args.out + '.log')
    start_time = time.time()
    try:
        defaults = vars(parser.parse_args([]))
        opts = vars(args)
        non_defaults = [x for x in list(opts.keys()) if opts[x] != defaults[x]]
        header = MASTHEAD
        header += "Call: \n"
        header += './run_lcv.py \\\n'
        options = ['--'+x.replace('_','-')+' '+str(opts[x])+' \\' for x in non_defaults]
        header += '\n'.join(options).replace('True','').replace('False','')
        header = header[0:-1]+'\n'
        log.log(header)
        log.log('Beginning analysis at {T}'.format(T=time.ctime()))
        if args.n_blocks < 3:
            raise ValueError('--n-blocks must be an integer >= 3.')
        if args.sumstats1 is None or args.sumstats2 is None:
            raise ValueError('Must set both --sumstats1 and --sumstats2.')
        if bool(args.ref_ld) == bool(args.ref_ld_chr):
            raise ValueError('Must set exactly one of --ref-ld and --ref-ld-chr.')
        if args.crosstrait_intercept == 2 and args.cross_int is None:
            raise ValueError('Must set --cross-int with --crosstrait-intercept 2.')
        if not args.no_intercept and (args.n1 is not None or args.n2 is not None):
            log.log('--n1 and --n2 are only used with --no-intercept and are being ignored.')
            args.n1 = args.n2 = None

        return sumstats.estimate_gcp(args, log)
    except Exception:
        log.log(traceback.format_exc())
        raise
    finally:
        log.log('Analysis finished at {T}'.format(T=time.ctime()))
        time_elapsed = round(time.time() - start_time, 2)
        log.log('Total time elapsed: {T}'.format(T=sec_to_str(time_elapsed)))
        log.log_fh.close()


if __name__ == '__main__':
    main(sys.argv[1:])

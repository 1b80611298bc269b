'''
Parsers for the ldsc file formats used as LCV input: .sumstats files from
munge_sumstats.py and .l2.ldscore files.

'''

import os
import pandas as pd


def read_csv(fh, **kwargs):
    return pd.read_csv(fh, sep=r'\s+', na_values='.', **kwargs)


def sub_chr(s, chr):
    '''Substitute chr for @, else append chr to the end of str.'''
    if '@' not in s:
        s += '@'

    return s.replace('@', str(chr))


def which_compression(fh):
    '''Given a file prefix, figure out what sort of compression to use.'''
    if os.access(fh + '.bz2', 4):
        suffix = '.bz2'
        compression = 'bz2'
    elif os.access(fh + '.gz', 4):
        suffix = '.gz'
        compression = 'gzip'
    elif os.access(fh, 4):
        suffix = ''
        compression = None
    else:
        raise IOError('Could not open {F}[./gz/bz2]'.format(F=fh))

    return suffix, compression


def get_compression(fh):
    '''Which sort of compression should we use with read_csv?'''
    if fh.endswith('gz'):
        compression = 'gzip'
    elif fh.endswith('bz2'):
        compression = 'bz2'
    else:
        compression = None

    return compression


def sumstats(fh, alleles=True, dropna=True):
    '''Parses .sumstats files (SNP, A1, A2, N, Z).'''
    dtype_dict = {'SNP': str, 'Z': float, 'N': float, 'A1': str, 'A2': str}
    compression = get_compression(fh)
    usecols = ['SNP', 'Z', 'N']
    if alleles:
        usecols += ['A1', 'A2']

    try:
        x = read_csv(fh, usecols=usecols, dtype=dtype_dict, compression=compression)
    except (AttributeError, ValueError) as e:
        raise ValueError('Improperly formatted sumstats file: ' + str(e.args))

    if dropna:
        x = x.dropna(how='any')

    return x


def l2_parser(fh, compression):
    '''Parse LD Score files'''
    x = read_csv(fh, header=0, compression=compression)
    if 'MAF' in x.columns and 'CM' in x.columns:  # for backwards compatibility w/ v<1.0.0
        x = x.drop(['MAF', 'CM'], axis=1)
    return x


def ldscore(fh, num=None):
    '''
    Parse .l2.ldscore files, split across num chromosomes, and return SNP and one LD
    Score column (named L2), sorted by position.

    '''
    suffix = '.l2.ldscore'
    if num is not None:  # num files, e.g., one per chromosome
        first_fh = sub_chr(fh, 1) + suffix
        s, compression = which_compression(first_fh)
        chr_ld = [l2_parser(sub_chr(fh, i) + suffix + s, compression) for i in range(1, num + 1)]
        x = pd.concat(chr_ld)
    else:  # just one file
        s, compression = which_compression(fh + suffix)
        x = l2_parser(fh + suffix + s, compression)

    x = x.sort_values(by=['CHR', 'BP'])  # jackknife blocks must be contiguous
    x = x.drop(['CHR', 'BP'], axis=1).drop_duplicates(subset='SNP')
    if len(x.columns) != 2:
        raise ValueError('LCV requires exactly one LD Score column; found {N}.'.format(
            N=len(x.columns) - 1))

    x.columns = ['SNP', 'L2']
    return x.reset_index(drop=True)

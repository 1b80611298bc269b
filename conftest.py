'''pytest puts the directory of this file on sys.path, so the tests can import run_lcv.'''

from setuptools import setup

# read the contents of your README file
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(name='lcv',
      version='1.0.0',
      description='Latent Causal Variable model (LCV)',
      long_description=long_description,
      long_description_content_type='text/markdown',
      author='',
      author_email='',
      license='GPLv3',
      packages=['lcv'],
      py_modules=['run_lcv'],
      scripts=['run_lcv.py'],
      install_requires = [
            'scipy>=1.9.2',
            'numpy>=1.23.3',
            'pandas>=1.5.0'
      ],
      extras_require = {
            'test': ['pytest>=7.0']
      }
)

from os.path import abspath, dirname, join
from setuptools import setup

cwd = abspath(dirname(__file__))
readme = open(join(cwd, 'readme.rst'))
kwds = {'long_description': readme.read()}
readme.close()

setup(name='HRSparse.py',
      version='1.0.0',
      description='HRSparse.py: Hellerman-Rarick ordering of sparse pattern matrices',
      author='Richard Lincoln',
      author_email='r.w.lincoln@gmail.com',
      install_requires=['numpy'],
      extras_require={'test': ['pytest']},
      classifiers=['Development Status :: 4 - Beta',
            'Intended Audience :: Science/Research',
            'License :: OSI Approved :: GNU Lesser General Public License v2 or later (LGPLv2+)',
            'Programming Language :: Python :: 3',
            'Topic :: Scientific/Engineering :: Mathematics'],
      py_modules=['hrsparse'],
      entry_points={'console_scripts': ['hrsparse = hrsparse:main']},
      test_suite='hrsparse_test',
      zip_safe=True,
      **kwds)

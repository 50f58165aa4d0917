from setuptools import setup

setup(name='pyqp',
      version='0.1.0',
      description='Exact active-set solver for convex quadratic and linear programs',
      packages=['pyqp', 'pyqp.pricing'],
      install_requires=['numpy>=1.7', 'scipy>=0.14'],
      extras_require={'test': ['pytest']},
      entry_points={'console_scripts': ['pyqp=pyqp.cli:main']},
      )

from setuptools import setup, find_packages

setup(
    name='webppl-py',
    version='0.1.0',
    py_modules=['webppl', 'compiler'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'lark',
        'pydantic>=2.0',
        'numpy',
        'scipy',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'webppl = webppl:main',
        ],
    },
)

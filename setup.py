from setuptools import setup, find_packages

setup(
    name='jspack',
    version='0.1.0',
    py_modules=['jspack', 'builder'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'jspack_core.runtime': ['*.js'],
    },
    install_requires=[
        'lark',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'jspack = jspack:main',
        ],
    },
)

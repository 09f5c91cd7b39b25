from setuptools import setup, find_packages

setup(
    name='promptlang',
    version='0.1.0',
    description='Compiler for a typed prompt orchestration language targeting Python asyncio',
    py_modules=['promptc', 'compiler'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'lark',
        'pydantic>=2',
        'requests',
        'jinja2',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'promptc = promptc:main',
        ],
    },
)

from setuptools import setup, find_packages

setup(
    name='tts-bundle',
    version='0.1.0',
    py_modules=['tts', 'adapter'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'lark',
        'pydantic>=2.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'tts-bundle = tts:main',
        ],
    },
)

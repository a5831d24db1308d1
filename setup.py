from setuptools import setup, find_packages

setup(
    name='hh-sdk',
    version='0.1.0',
    description='Python SDK for packing, sending and diagnosing Solana program transactions',
    author='HH Team',
    packages=find_packages(exclude=['tests', 'tests.*', 'examples']),
    install_requires=[
        'base58>=2.1.1',
        'pynacl>=1.5.0',
        'httpx>=0.25.0',
        'python-dotenv>=1.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'pytest-httpx>=0.26.0',
        ],
    },
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
    ],
)

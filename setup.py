from setuptools import find_packages, setup

setup(
    name='gpio-dbus',
    version='0.1.0',
    description='D-Bus daemon exposing libgpiod chips and lines with udev hotplug tracking',
    author='isantolin',
    author_email='',
    packages=find_packages(include=['gpiodbus', 'gpiodbus.*']),
    python_requires='>=3.12',
    install_requires=[
        'dbus-fast',
        'gpiod>=2.0',
        'pyudev',
        'msgspec',
        'transitions',
        'uvloop',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    entry_points={
        'console_scripts': [
            'gpio-dbus=gpiodbus.daemon:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
)

from .base import BaseViewModel
from .detail_viewmodel import DetailViewModel
from .gallery_viewmodel import GalleryViewModel
from .signal import ObservableProperty, Signal

__all__ = [
    "BaseViewModel",
    "DetailViewModel",
    "GalleryViewModel",
    "ObservableProperty",
    "Signal",
]

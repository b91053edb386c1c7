"""
PSO-TSP Solver - Visualization Module
Plot the best tour and the global-best convergence curve.
"""

import matplotlib.pyplot as plt
import numpy as np
from typing import List

from tsp_core import Tour


class TSPVisualizer:
    """Visualize TSP tours and optimization progress."""

    def __init__(self, figsize=(12, 8)):
        self.figsize = figsize

    def _finish(self, fig, save_path: str, show: bool, what: str):
        plt.tight_layout()

        if save_path:
            fig.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"{what} saved to {save_path}")

        if show:
            plt.show()
        else:
            plt.close(fig)

    def plot_tour(
        self,
        tour: Tour,
        title: str = "TSP Tour",
        show_arrows: bool = True,
        save_path: str = None,
        show: bool = True
    ):
        """
        Plot a single tour.

        Args:
            tour: The tour to visualize
            title: Plot title
            show_arrows: Show direction arrows on edges
            save_path: Optional path to save the figure
            show: Open a window; otherwise the figure is closed after saving
        """
        fig, ax = plt.subplots(figsize=self.figsize)

        cities = tour.cities
        coords = np.array([(c.x, c.y) for c in cities], dtype=float)
        closed = np.vstack([coords, coords[:1]])

        ax.scatter(coords[:, 0], coords[:, 1],
                   c='red', s=200, zorder=3, edgecolors='darkred', linewidth=2)
        ax.plot(closed[:, 0], closed[:, 1], 'b-', linewidth=2, alpha=0.6, zorder=1)

        # Label each stop with its city index
        for city_id, (x, y) in zip(tour.route, coords):
            ax.annotate(str(city_id), (x, y), fontsize=9, ha='center', va='center',
                        color='white', weight='bold')

        if show_arrows:
            for start, end in zip(closed[:-1], closed[1:]):
                mid = (start + end) / 2
                delta = (end - start) * 0.1
                ax.annotate('', xy=mid + delta, xytext=mid - delta,
                            arrowprops=dict(arrowstyle='->', color='blue', lw=2, alpha=0.7))

        ax.scatter([coords[0, 0]], [coords[0, 1]],
                   c='green', s=300, zorder=4, marker='*', edgecolors='darkgreen', linewidth=2)

        ax.set_title(f"{title}\nTotal Distance: {tour.get_total_distance():.2f}",
                     fontsize=14, weight='bold')
        ax.set_xlabel('X Coordinate', fontsize=12)
        ax.set_ylabel('Y Coordinate', fontsize=12)
        ax.grid(True, alpha=0.3)
        ax.set_aspect('equal')

        self._finish(fig, save_path, show, "Tour")
        return fig

    def plot_convergence(
        self,
        history: List[float],
        title: str = "Convergence History",
        xlabel: str = "Iteration",
        ylabel: str = "Global Best Distance",
        save_path: str = None,
        show: bool = True
    ):
        """Plot the global-best cost after each iteration."""
        fig, ax = plt.subplots(figsize=(10, 6))

        iterations = np.arange(len(history))
        ax.plot(iterations, history, 'b-', linewidth=2, label='Global Best')
        ax.fill_between(iterations, history, alpha=0.3)

        initial = history[0]
        final = history[-1]
        improvement = ((initial - final) / initial) * 100 if initial else 0.0

        ax.axhline(y=final, color='g', linestyle='--', linewidth=1.5, label=f'Final: {final:.2f}')
        ax.axhline(y=initial, color='r', linestyle='--', linewidth=1.5, label=f'Initial: {initial:.2f}')

        ax.set_xlabel(xlabel, fontsize=12)
        ax.set_ylabel(ylabel, fontsize=12)
        ax.set_title(f"{title}\nImprovement: {improvement:.2f}%", fontsize=14, weight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='upper right', fontsize=10)

        self._finish(fig, save_path, show, "Convergence plot")
        return fig

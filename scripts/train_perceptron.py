"""Train a multilayer perceptron on a CSV data set (or a synthetic curve) with one of the optimizers."""

import argparse
from pathlib import Path

import numpy as np

from descent.data import Dataset, load_csv_dataset
from descent.loss import CrossEntropyLoss, MeanSquaredError, ModelLoss
from descent.models import MultilayerPerceptron
from descent.optimizers import (
    ConjugateGradient,
    Optimizer,
    QuasiNewtonMethod,
    StochasticGradientDescent,
    StoppingCriteriaConfig,
    load_optimizer,
)


_OPTIMIZERS = {
    "sgd": StochasticGradientDescent,
    "cg": ConjugateGradient,
    "qn": QuasiNewtonMethod,
}


def _load_data(args: argparse.Namespace) -> tuple[np.ndarray, np.ndarray]:
    if len(args.data) > 0:
        inputs, targets = load_csv_dataset(Path(args.data), n_targets=args.n_targets, skip_header=args.skip_header)
        print(f"Loaded {inputs.shape[0]:,} samples with {inputs.shape[1]} inputs from {args.data}")
    else:
        inputs = np.linspace(-3, 3, 200).reshape(-1, 1)
        targets = np.sin(inputs)
        print(f"Generated {inputs.shape[0]:,} samples of a sine curve")
    return inputs, targets


def _initialize_optimizer(args: argparse.Namespace, loss_index: ModelLoss) -> Optimizer:
    if len(args.config) > 0:
        optimizer = load_optimizer(Path(args.config), loss_index=loss_index)
        print(f"Loaded {type(optimizer).__name__} configuration from {args.config}")
        return optimizer

    stopping_criteria = StoppingCriteriaConfig(
        loss_goal=args.loss_goal,
        maximum_epochs=args.max_epochs,
        maximum_time=args.max_time,
    )
    if args.optimizer == "sgd":
        return StochasticGradientDescent(
            loss_index,
            initial_learning_rate=args.learning_rate,
            momentum=args.momentum,
            batch_size=args.batch_size,
            stopping_criteria=stopping_criteria,
            display_period=args.display_period,
        )
    return _OPTIMIZERS[args.optimizer](
        loss_index,
        first_learning_rate=args.learning_rate,
        stopping_criteria=stopping_criteria,
        display_period=args.display_period,
    )


def main(args: argparse.Namespace) -> None:
    """Entrypoint."""
    inputs, targets = _load_data(args)
    dataset = Dataset(inputs, targets, selection_fraction=args.selection_fraction, seed=args.seed)

    if args.classification:
        n_classes = int(np.max(targets)) + 1
        error_term = CrossEntropyLoss()
        layer_sizes = (inputs.shape[1], *args.hidden, n_classes)
    else:
        error_term = MeanSquaredError()
        layer_sizes = (inputs.shape[1], *args.hidden, targets.shape[1])

    model = MultilayerPerceptron(layer_sizes=layer_sizes, seed=args.seed)
    print(f"Initialized model with layer_sizes={layer_sizes} and n_params={model.n_params:,}")
    loss_index = ModelLoss(model, error_term, dataset, regularization_weight=args.regularization)

    optimizer = _initialize_optimizer(args, loss_index)
    if len(args.save_config) > 0:
        optimizer.save(Path(args.save_config))
        print(f"Saved optimizer configuration to {args.save_config}")

    results = optimizer.perform_training()

    if len(args.model_out) > 0:
        model.save(Path(args.model_out))
        print(f"Saved model checkpoint to {args.model_out}")
    if results.failed:
        raise RuntimeError(f"Training failed: {results.stopping_reason.description}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Train a multilayer perceptron.")
    parser.add_argument(
        "-d",
        "--data",
        type=str,
        required=False,
        default="",
        help="A numeric CSV file whose last columns are the targets. A sine curve is used if omitted",
    )
    parser.add_argument(
        "--n_targets",
        type=int,
        required=False,
        default=1,
        help="The number of target columns in the CSV file",
    )
    parser.add_argument(
        "--skip_header",
        type=int,
        required=False,
        default=0,
        help="The number of header rows to skip in the CSV file",
    )
    parser.add_argument(
        "--classification",
        action="store_true",
        help="Treat the single target column as class indices and train with a cross-entropy loss",
    )
    parser.add_argument(
        "--hidden",
        type=int,
        nargs="*",
        default=[8],
        help="The sizes of the hidden layers",
    )
    parser.add_argument(
        "-o",
        "--optimizer",
        type=str,
        choices=sorted(_OPTIMIZERS),
        default="qn",
        help="The optimizer: stochastic gradient descent, conjugate gradient or quasi-Newton",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        required=False,
        default="",
        help="A JSON optimizer configuration saved by a previous run. Overrides the optimizer flags",
    )
    parser.add_argument(
        "--save_config",
        type=str,
        required=False,
        default="",
        help="Write the optimizer configuration to this JSON file before training",
    )
    parser.add_argument(
        "-m",
        "--model_out",
        type=str,
        required=False,
        default="",
        help="Write the trained model checkpoint to this file",
    )
    parser.add_argument(
        "-lr",
        "--learning_rate",
        type=float,
        required=False,
        default=0.01,
        help="The (initial) learning rate",
    )
    parser.add_argument(
        "--momentum",
        type=float,
        required=False,
        default=0.0,
        help="The momentum for stochastic gradient descent",
    )
    parser.add_argument(
        "-bs",
        "--batch_size",
        type=int,
        required=False,
        default=32,
        help="The batch size for stochastic gradient descent",
    )
    parser.add_argument(
        "--regularization",
        type=float,
        required=False,
        default=0.0,
        help="The L2 regularization weight",
    )
    parser.add_argument(
        "--selection_fraction",
        type=float,
        required=False,
        default=0.2,
        help="The fraction of samples held out to compute the selection loss",
    )
    parser.add_argument(
        "--loss_goal",
        type=float,
        required=False,
        default=0.0,
        help="Stop once the training loss reaches this value",
    )
    parser.add_argument(
        "-e",
        "--max_epochs",
        type=int,
        required=False,
        default=1000,
        help="The maximum number of epochs",
    )
    parser.add_argument(
        "--max_time",
        type=float,
        required=False,
        default=3600.0,
        help="The maximum training time in seconds",
    )
    parser.add_argument(
        "--display_period",
        type=int,
        required=False,
        default=10,
        help="Report progress every this many epochs",
    )
    parser.add_argument(
        "-s",
        "--seed",
        type=int,
        required=False,
        default=0,
        help="The random seed for the model initialization and the selection split",
    )
    args = parser.parse_args()

    main(args)

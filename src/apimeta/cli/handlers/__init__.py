from .generate import handle_augment, handle_collect, _print_batch_summary, _select_files
